"""
Cellcrafter — build_exe.py
PyInstaller build script that bundles the game and data/gameplay.toml into
one executable. Run via python build_exe.py [--console]
"""

import os
import sys
from pathlib import Path
import PyInstaller.__main__

def build_args(project_root: Path, console: bool = False) -> list:
    args = [
        str(project_root / "run.py"),
        "--name", "Cellcrafter",
        "--onefile",
        f"--add-data={project_root / 'data'}{os.pathsep}data",
        "--clean",
        "-y",
    ]
    # Logs go to stderr, so a console build is the one to debug with
    args.insert(3, "--console" if console else "--windowed")
    return args

def build(console: bool = False):
    args = build_args(Path(__file__).parent.resolve(), console)
    print(f"Running PyInstaller with args: {args}")
    PyInstaller.__main__.run(args)
    print("\nBuild complete. Check the `dist/` folder.")

if __name__ == "__main__":
    build(console="--console" in sys.argv)
