import logging

import pytest
from engine.logging_config import NAMESPACE, setup_logging


@pytest.fixture
def clean_logger():
    logger = logging.getLogger(NAMESPACE)
    saved = list(logger.handlers), logger.level
    yield logger
    for handler in list(logger.handlers):
        if handler not in saved[0]:
            logger.removeHandler(handler)
            handler.close()
    logger.setLevel(saved[1])


def test_repeated_setup_replaces_own_handlers(clean_logger):
    foreign = logging.NullHandler()
    clean_logger.addHandler(foreign)

    setup_logging(logging.INFO)
    setup_logging(logging.DEBUG)

    owned = [h for h in clean_logger.handlers if h is not foreign]
    assert len(owned) == 1
    assert foreign in clean_logger.handlers
    assert clean_logger.level == logging.DEBUG

def test_log_file_records_module_and_thread(clean_logger, tmp_path):
    path = tmp_path / "cellcrafter.log"
    setup_logging(logging.INFO, str(path))
    logging.getLogger("cellcrafter.cache").info("recompute done")
    for handler in clean_logger.handlers:
        handler.flush()

    line = path.read_text(encoding="utf-8").strip().splitlines()[-1]
    assert "cellcrafter.cache" in line
    assert "[MainThread]" in line
    assert line.endswith("recompute done")
