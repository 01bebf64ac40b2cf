"""
Cellcrafter — ui/renderer.py
TCOD Renderer: root console plus the HUD and popup primitives the screens share.
===============================================================================
Stack:       Python 3.11+ | tcod
"""

from __future__ import annotations
from typing import Optional, Sequence, Tuple
import tcod

Color = Tuple[int, int, int]

POPUP_FG = (255, 255, 255)
POPUP_BG = (20, 20, 30)

class Renderer:
    """
    Manages the tcod root console.
    """
    def __init__(self, width: int, height: int, title: str = "Cellcrafter"):
        self.width = width
        self.height = height
        self.title = title
        self.root_console = tcod.console.Console(width, height)
        self.context: Optional[tcod.context.Context] = None

    def clear(self) -> None:
        self.root_console.clear()

    def present(self, context: tcod.context.Context) -> None:
        context.present(self.root_console)

    def print_line(self, y: int, text: str, fg: Color = (255, 255, 255)) -> None:
        """Prints one HUD line at row y (negative counts from the bottom), clipped to the console."""
        if y < 0:
            y += self.height
        self.root_console.print(1, y, text[: self.width - 2], fg=fg)

    def draw_popup(self, anchor: Tuple[int, int], lines: Sequence[str]) -> Tuple[int, int]:
        """
        Draws a framed box of text just right of `anchor`, kept on screen.
        Returns the box's top-left corner.
        """
        width = min(self.width - 2, max(len(line) for line in lines) + 4)
        height = len(lines) + 2
        x = max(0, min(self.width - width, anchor[0] + 2))
        y = max(0, min(self.height - height, anchor[1] - 1))

        self.root_console.draw_frame(x, y, width, height, clear=True, fg=POPUP_FG, bg=POPUP_BG)
        for n, line in enumerate(lines):
            self.root_console.print(x + 2, y + 1 + n, line[: width - 4], fg=POPUP_FG, bg=POPUP_BG)
        return x, y
