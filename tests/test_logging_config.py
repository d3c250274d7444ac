"""Test unified logging setup and context fields."""

import json
import logging
import logging.handlers

import pytest

from scanline3d.utils import logging_config


@pytest.fixture(autouse=True)
def clean_context():
    """Each test starts and ends without context fields."""
    logging_config.pop_context()
    yield
    logging_config.pop_context()


def _record(msg="hello", level=logging.INFO):
    return logging.LogRecord("scanline3d.test", level, __file__, 1, msg, None, None)


def test_setup_is_idempotent():
    """Repeated setup replaces handlers instead of stacking them."""
    root = logging.getLogger()
    logging_config.setup_logging("INFO")
    first = len(root.handlers)
    logging_config.setup_logging("DEBUG")
    assert len(root.handlers) == first
    assert root.level == logging.DEBUG


def test_unknown_level():
    """Unknown level names are rejected."""
    with pytest.raises(ValueError, match="Unknown log level"):
        logging_config.setup_logging("LOUD")


def test_file_handler_writes_json(tmp_path):
    """JSON file output carries message and context fields."""
    log_file = tmp_path / "logs" / "render.log"
    info = logging_config.setup_logging("INFO", str(log_file), json=True, to_stderr=False,
                                        context={'app': 'render'})
    assert len(info['handlers']) == 1

    logging.getLogger("scanline3d.test").info("frame done")
    for handler in info['handlers']:
        handler.flush()

    entry = json.loads(log_file.read_text().strip().splitlines()[-1])
    assert entry['msg'] == "frame done"
    assert entry['lvl'] == "INFO"
    assert entry['app'] == "render"
    logging_config.setup_logging("INFO")


def test_rotating_file_handler(tmp_path):
    """Size rotation installs a RotatingFileHandler."""
    info = logging_config.setup_logging(
        "INFO", str(tmp_path / "r.log"), to_stderr=False,
        rotate={'mode': 'size', 'max_bytes': 1000, 'backup_count': 1}
    )
    assert isinstance(info['handlers'][0], logging.handlers.RotatingFileHandler)
    with pytest.raises(ValueError, match="rotation mode"):
        logging_config.setup_logging("INFO", str(tmp_path / "x.log"), rotate={'mode': 'weekly'})
    logging_config.setup_logging("INFO")


def test_human_format_includes_context():
    """Human format shows pushed fields between level and message."""
    fmt = logging_config.ContextFormatter("human", use_color=False)
    logging_config.push_context(app="render", script="scene.dw")
    line = fmt.format(_record("Saved out.png"))
    assert "| INFO     | app=render script=scene.dw | Saved out.png" in line


def test_pop_context_keys():
    """pop_context removes only the named keys."""
    logging_config.push_context(app="render", script="a.dw")
    logging_config.pop_context(["script"])
    assert logging_config.get_context() == {'app': 'render'}


def test_formatter_rejects_unknown_mode():
    """Only human and json layouts exist."""
    with pytest.raises(ValueError):
        logging_config.ContextFormatter("xml")


def test_log_context_restores_previous_fields():
    """log_context fields vanish after the block, earlier fields stay."""
    logging_config.push_context(app="orbit")
    with logging_config.log_context(frame=3):
        assert logging_config.get_context() == {'app': 'orbit', 'frame': 3}
    assert logging_config.get_context() == {'app': 'orbit'}


def test_log_context_restores_on_error():
    with pytest.raises(RuntimeError):
        with logging_config.log_context(script="bad.dw"):
            raise RuntimeError("boom")
    assert logging_config.get_context() == {}


def test_configure_from_settings(tmp_path):
    """Settings model drives level, file and app field; verbose forces DEBUG."""
    from scanline3d.utils.validators import LoggingSettings

    settings = LoggingSettings(level="warning", file=str(tmp_path / "orbit.log"), json=True)
    info = logging_config.configure_from_settings(settings, app="orbit", verbose=True)
    assert logging.getLogger().level == logging.DEBUG
    assert any(isinstance(h, logging.FileHandler) for h in info['handlers'])
    assert logging_config.get_context()['app'] == "orbit"
    logging_config.setup_logging("INFO")


def test_foreign_handlers_survive_setup():
    """Only handlers installed by setup_logging are replaced."""
    root = logging.getLogger()
    foreign = logging.NullHandler()
    root.addHandler(foreign)
    try:
        logging_config.setup_logging("INFO")
        logging_config.setup_logging("INFO")
        assert foreign in root.handlers
    finally:
        root.removeHandler(foreign)


def test_configure_from_settings_rotation(tmp_path):
    """A rotate section in the settings selects the rotating handler."""
    from scanline3d.utils.validators import LogRotation, LoggingSettings

    settings = LoggingSettings(file=str(tmp_path / "render.log"),
                               rotate=LogRotation(mode="size", max_bytes=2048, backup_count=1))
    info = logging_config.configure_from_settings(settings, app="render")
    handler = info['handlers'][-1]
    assert isinstance(handler, logging.handlers.RotatingFileHandler)
    assert handler.maxBytes == 2048
    assert handler.backupCount == 1
    logging_config.setup_logging("INFO")
