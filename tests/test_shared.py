# tests/test_shared.py
"""
Shared Utility Tests - Throttling, Rate Limiting, Validators, Language and Logging

Files that this module USES:
- pricewatch.shared.rate_limiter (HostThrottle, RateLimiter)
- pricewatch.shared.validators (input and config parsing helpers)
- pricewatch.shared.language (translate, resolve_language)
- pricewatch.shared.logging_conf (setup_logging)
- pytest (testing framework)
"""
import logging
from datetime import time
from logging.handlers import RotatingFileHandler
from unittest.mock import Mock

import pytest

from pricewatch.shared.language import resolve_language, translate
from pricewatch.shared.logging_conf import setup_logging
from pricewatch.shared.rate_limiter import HostThrottle, RateLimitConfig, RateLimiter
from pricewatch.shared.validators import parse_clock_time, split_csv, validate_numeric_input


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.now += seconds


class TestHostThrottle:
    def test_same_host_waits(self):
        clock = FakeClock()
        throttle = HostThrottle(min_interval=2.0, clock=clock, sleep=clock.sleep)

        assert throttle.wait("https://www.xe.com/a") == 0.0
        clock.now += 0.5
        assert throttle.wait("https://www.xe.com/b") == pytest.approx(1.5)

    def test_different_hosts_do_not_wait(self):
        clock = FakeClock()
        throttle = HostThrottle(min_interval=2.0, clock=clock, sleep=clock.sleep)

        throttle.wait("https://www.xe.com/a")
        assert throttle.wait("https://open.er-api.com/v6/latest/USD") == 0.0


class TestRateLimiter:
    def test_blocks_after_limit(self):
        clock = FakeClock()
        limiter = RateLimiter(clock=clock)
        config = RateLimitConfig(max_requests=2, time_window=60, block_duration=300)

        assert limiter.is_allowed("u", config)
        assert limiter.is_allowed("u", config)
        assert not limiter.is_allowed("u", config)
        assert limiter.get_reset_time("u", config) == 1300.0

        clock.now += 301
        assert limiter.is_allowed("u", config)


class TestValidators:
    @pytest.mark.parametrize("value,ok", [("3300", True), ("0", True), ("-1", False), ("nan", False), ("abc", False), ("", False)])
    def test_numeric(self, value, ok):
        assert validate_numeric_input(value, min_val=0) is ok

    def test_split_csv(self):
        assert split_csv(" Gold, silver,,gold ", lower=True) == ["gold", "silver"]

    def test_parse_clock_time(self):
        assert parse_clock_time("9:05") == time(9, 5)
        with pytest.raises(ValueError):
            parse_clock_time("24:00")


class TestLanguage:
    @pytest.mark.parametrize("requested,resolved", [("ar", "ar"), ("AR_eg", "ar"), ("en-US", "en"), ("fr", "en"), (None, "en")])
    def test_resolve(self, requested, resolved):
        assert resolve_language(requested) == resolved

    def test_missing_parameter_returns_template(self):
        assert translate("invalid_target", "en") == "Unknown target: {target}"

    def test_unknown_key_returns_key(self):
        assert translate("no_such_key", "ar") == "no_such_key"


class TestSetupLogging:
    def _handlers(self, monkeypatch, **kwargs):
        basic_config = Mock()
        monkeypatch.setattr(logging, "basicConfig", basic_config)
        path = setup_logging(**kwargs)
        handlers = basic_config.call_args.kwargs["handlers"]
        for handler in handlers:
            handler.close()
        return path, handlers

    def test_log_dir_gets_rotating_file(self, monkeypatch, tmp_path):
        path, handlers = self._handlers(monkeypatch, log_dir=tmp_path / "logs", log_file=tmp_path / "ignored.log")

        assert path == tmp_path / "logs" / "pricewatch.log"
        assert path.exists()
        rotating = [h for h in handlers if isinstance(h, RotatingFileHandler)]
        assert len(rotating) == 1
        assert rotating[0].baseFilename == str(path)

    def test_stdout_can_be_disabled(self, monkeypatch, tmp_path):
        monkeypatch.setenv("PRICEWATCH_LOG_STDOUT", "false")
        _, handlers = self._handlers(monkeypatch, log_file=tmp_path / "bot.log")

        assert [type(h) for h in handlers] == [RotatingFileHandler]

    def test_stdout_kept_when_nothing_else_configured(self, monkeypatch):
        monkeypatch.setenv("PRICEWATCH_LOG_STDOUT", "false")
        path, handlers = self._handlers(monkeypatch)

        assert path is None
        assert [type(h) for h in handlers] == [logging.StreamHandler]
