"""Tests for sink level filtering and the close cascade."""

import pytest

from shipcat.core.log import (
    LEVELS,
    ConsoleSink,
    FileSink,
    Logger,
    LogfireSink,
    OTLPSink,
    level_name,
    setup_logger,
)

MESSAGES = ("spew", "trace", "debug", "info", "warn", "error")


def file_logger(tmp_path, level):
    log_file = tmp_path / f"{level}.log"
    logger = setup_logger(
        log_root=tmp_path,
        run_name="test",
        console=ConsoleSink(enabled=False),
        otlp=OTLPSink(enabled=False),
        file=FileSink(enabled=True, level=level, path=str(log_file)),
        logfire=LogfireSink(enabled=False),
    )
    return logger, log_file


@pytest.mark.parametrize("level", ["spew", "trace", "debug", "info", "warn", "error"])
def test_file_sink_filters_below_level(tmp_path, level):
    logger, log_file = file_logger(tmp_path, level)

    for name in MESSAGES:
        getattr(logger, name)(f"{name.upper()} message")
    logger.close()

    content = log_file.read_text()
    threshold = MESSAGES.index(level)
    for i, name in enumerate(MESSAGES):
        present = f"{name.upper()} message" in content
        assert present == (i >= threshold), name


def test_command_output_level(tmp_path):
    """Runner output logged at spew lands only in spew-level sinks."""
    logger, log_file = file_logger(tmp_path, "spew")

    logger.log("spew", "{line}", line="Compiling acme_css v1.2.3")
    logger.log("info", "Target built")
    logger.close()

    content = log_file.read_text()
    assert "Compiling acme_css v1.2.3" in content
    assert "Target built" in content


def test_level_ordering():
    order = ["spew", "trace", "debug", "info", "warn", "error", "fatal"]
    values = [LEVELS[name] for name in order]
    assert values == sorted(values)
    assert len(set(values)) == len(values)


def test_level_name_round_trips():
    for name, number in LEVELS.items():
        assert level_name(number) == name


def test_attributes_appended(tmp_path):
    logger, log_file = file_logger(tmp_path, "info")

    logger.info("Stored {name}", name="bindings-linux-x64-gnu", size=12)
    logger.close()

    line = log_file.read_text().strip()
    assert "Stored bindings-linux-x64-gnu" in line
    assert "size=12" in line


def test_logger_closes_file_via_context_manager(tmp_path):
    logger = Logger(
        console=ConsoleSink(enabled=False),
        file=FileSink(enabled=True, path=str(tmp_path / "test.log")),
        otlp=OTLPSink(enabled=False),
        logfire={"enabled": False},
    )
    logger.setup(log_root=tmp_path, run_name="test")
    assert not logger.file._file.closed

    with pytest.raises(ValueError), logger:
        logger.info("before exception")
        raise ValueError("boom")

    assert logger.file._file.closed
    assert "before exception" in (tmp_path / "test.log").read_text()


def test_file_path_template(tmp_path):
    logger = Logger(
        console=ConsoleSink(enabled=False),
        file=FileSink(enabled=True),
        logfire={"enabled": False},
    )
    logger.setup(log_root=tmp_path, run_name="acme-css-1.2.3")
    logger.close()

    assert (tmp_path / "acme-css-1.2.3" / "shipcat.log").is_file()


def test_config_close_cascades_to_sinks(make_config, tmp_path):
    config = make_config(
        logger=Logger(
            console=ConsoleSink(enabled=False),
            file=FileSink(enabled=True, path=str(tmp_path / "cascade.log")),
            logfire={"enabled": False},
        )
    )
    assert not config.logger.file._file.closed

    config.close()

    assert config.logger.file._file.closed
