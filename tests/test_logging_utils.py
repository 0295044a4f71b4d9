"""Tests for the reusable logging helpers."""

from __future__ import annotations

import logging

import pytest

from vcf_combine import logging_utils as mod


def _flush():
    for handler in mod.logger.handlers:
        handler.flush()


# ------------------------
# Tests for error handlers
# ------------------------

def test_handle_non_critical_error_logs_warning(combiner_caplog):
    message = "recoverable condition"

    mod.handle_non_critical_error(message)

    warnings = [rec for rec in combiner_caplog.records if rec.levelno == logging.WARNING]
    assert warnings, "Expected a warning log entry"
    assert any(rec.message == message for rec in warnings)


def test_handle_critical_error_logs_error_and_critical(combiner_caplog):
    message = "fatal condition detected"
    root_exc = ValueError("boom")

    with pytest.raises(mod.CombineVCFError) as excinfo:
        mod.handle_critical_error(message, exc_info=root_exc)

    # Raised error should chain the original exception
    assert excinfo.value.__cause__ is root_exc

    error_levels = [
        rec.levelno
        for rec in combiner_caplog.records
        if rec.message == message and rec.levelno in {logging.ERROR, logging.CRITICAL}
    ]
    assert error_levels.count(logging.ERROR) == 1
    assert error_levels.count(logging.CRITICAL) == 1


def test_handle_critical_error_uses_requested_class(combiner_caplog):
    with pytest.raises(mod.InconsistentInputError):
        mod.handle_critical_error("bad input", exc_cls=mod.InconsistentInputError)


def test_log_message_echoes_when_verbose(capsys, combiner_caplog):
    mod.log_message("shown to the user", verbose=True)
    assert "shown to the user" in capsys.readouterr().out


def test_error_hierarchy():
    assert issubclass(mod.MissingPriorityError, mod.ConfigurationError)
    assert issubclass(mod.AlleleConflictError, mod.InconsistentInputError)
    assert issubclass(mod.CombineVCFError, RuntimeError)
    err = mod.OutputSinkError("cannot write", destination="/tmp/x.wig")
    assert err.destination == "/tmp/x.wig"


# ------------------------
# Tests for configuration
# ------------------------

def test_configure_logging_custom_file(tmp_path):
    log_path = tmp_path / "custom.log"

    mod.configure_logging(log_level="WARNING", log_file=log_path)
    mod.logger.warning("custom destination works")
    _flush()

    assert "custom destination works" in log_path.read_text(encoding="utf-8")


def test_configure_logging_disable_file_then_enable(tmp_path):
    mod.configure_logging(log_level=logging.ERROR, enable_file_logging=False)
    assert not any(isinstance(h, logging.FileHandler) for h in mod.logger.handlers)

    custom_path = tmp_path / "nested" / "final.log"
    mod.configure_logging(log_level="INFO", log_file=custom_path, enable_console=False)
    mod.logger.info("reconfigured logging writes to file")
    _flush()

    file_handlers = [h for h in mod.logger.handlers if isinstance(h, logging.FileHandler)]
    assert len(file_handlers) == 1
    assert len(mod.logger.handlers) == 1
    assert "reconfigured logging writes to file" in custom_path.read_text(encoding="utf-8")


def test_configure_logging_rejects_unknown_level():
    with pytest.raises(ValueError):
        mod.configure_logging(log_level="CHATTY", enable_file_logging=False)
