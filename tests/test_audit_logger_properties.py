"""
Property-based tests for Audit Logger module.

Uses Hypothesis to verify output formats, level filtering, and masking of
secrets and private values.
"""

import json
from io import StringIO

import pytest
from hypothesis import given, settings, assume
from hypothesis import strategies as st

from domain_availability.enums import LogLevel
from domain_availability.audit_logger import AuditLogger


# Strategies for generating valid test data

@st.composite
def log_level_strategy(draw) -> LogLevel:
    """Generate valid LogLevel values."""
    return draw(st.sampled_from(list(LogLevel)))


@st.composite
def component_name_strategy(draw) -> str:
    """Generate valid component names."""
    return draw(st.text(
        alphabet=st.sampled_from("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789_-"),
        min_size=1,
        max_size=50,
    ))


@st.composite
def message_strategy(draw) -> str:
    """Generate valid log messages."""
    return draw(st.text(
        alphabet=st.characters(
            whitelist_categories=('L', 'N', 'P', 'S', 'Z'),
            blacklist_characters='\x00\n\r',
        ),
        min_size=1,
        max_size=200,
    ))


@st.composite
def plain_key_strategy(draw) -> str:
    """Generate keys that are neither secret nor private."""
    key = draw(st.text(
        alphabet=st.sampled_from("abcdefghijklmnopqrstuvwxyz_"),
        min_size=1,
        max_size=20,
    ))
    for pattern in AuditLogger.SENSITIVE_KEYS:
        assume(pattern not in key)
    assume(key not in AuditLogger.PRIVATE_KEYS)
    return key


@st.composite
def sensitive_key_strategy(draw) -> str:
    """Generate keys that contain a secret marker."""
    base = draw(st.sampled_from([
        'token', 'secret', 'password', 'api_key', 'fastly_key',
        'webhook', 'authorization', 'credential', 'redis_url',
    ]))
    prefix = draw(st.sampled_from(['', 'my_', 'alert_', 'FASTLY_API_']))
    suffix = draw(st.sampled_from(['', '_value', '_url', '_1']))
    return f"{prefix}{base}{suffix}"


@st.composite
def simple_value_strategy(draw):
    """Generate simple JSON-serializable values."""
    return draw(st.one_of(
        st.text(min_size=0, max_size=50),
        st.integers(min_value=-1000, max_value=1000),
        st.booleans(),
        st.none(),
    ))


@st.composite
def plain_data_strategy(draw) -> dict:
    """Generate data dictionaries without secret or private keys."""
    return draw(st.dictionaries(plain_key_strategy(), simple_value_strategy(), max_size=5))


class TestDualFormatProperty:
    """Each entry is written as JSON, text, or both."""

    @given(
        level=log_level_strategy(),
        component=component_name_strategy(),
        message=message_strategy(),
        data=plain_data_strategy(),
    )
    @settings(max_examples=100)
    def test_dual_format_produces_both_outputs(
        self,
        level: LogLevel,
        component: str,
        message: str,
        data: dict,
    ) -> None:
        output = StringIO()
        logger = AuditLogger(output_format="both", output_stream=output, min_level=LogLevel.DEBUG)

        logger.log(level, component, message, data)

        lines = output.getvalue().strip().split('\n')
        assert len(lines) == 2

        parsed = json.loads(lines[0])
        assert parsed["level"] == level.value
        assert parsed["component"] == component
        assert parsed["message"] == message
        assert parsed["data"] == data
        assert "timestamp" in parsed

        assert level.value.upper() in lines[1]
        assert component in lines[1]
        assert message in lines[1]

    @given(
        level=log_level_strategy(),
        component=component_name_strategy(),
        message=message_strategy(),
    )
    @settings(max_examples=50)
    def test_json_only_format(self, level: LogLevel, component: str, message: str) -> None:
        output = StringIO()
        logger = AuditLogger(output_format="json", output_stream=output, min_level=LogLevel.DEBUG)

        logger.log(level, component, message)

        lines = [l for l in output.getvalue().split('\n') if l]
        assert len(lines) == 1
        assert json.loads(lines[0])["message"] == message

    def test_invalid_format_is_rejected(self) -> None:
        with pytest.raises(ValueError):
            AuditLogger(output_format="xml")


class TestLevelThreshold:
    """Entries below the minimum level are dropped."""

    @given(level=log_level_strategy(), minimum=log_level_strategy())
    @settings(max_examples=50)
    def test_threshold(self, level: LogLevel, minimum: LogLevel) -> None:
        order = list(LogLevel)
        output = StringIO()
        logger = AuditLogger(output_stream=output, min_level=minimum)

        entry = logger.log(level, "Component", "message")

        if order.index(level) >= order.index(minimum):
            assert entry is not None
            assert output.getvalue()
        else:
            assert entry is None
            assert output.getvalue() == ""

    def test_from_config_falls_back_to_info(self) -> None:
        logger = AuditLogger.from_config("loud", "text")

        assert logger.output_format == "text"
        assert logger.log(LogLevel.DEBUG, "C", "m") is None
        assert logger.log(LogLevel.INFO, "C", "m") is not None


class TestMasking:
    """Secrets are masked and private values redacted, at any depth."""

    @given(key=sensitive_key_strategy(), value=st.text(min_size=1, max_size=40))
    @settings(max_examples=100)
    def test_secrets_are_masked(self, key: str, value: str) -> None:
        output = StringIO()
        logger = AuditLogger(output_stream=output)

        entry = logger.log(LogLevel.INFO, "Config", "loaded", {key: value, "nested": {key: value}})

        assert entry.data[key] == AuditLogger.MASK_VALUE
        assert entry.data["nested"][key] == AuditLogger.MASK_VALUE

    @given(
        key=st.sampled_from(sorted(AuditLogger.PRIVATE_KEYS)),
        value=st.text(alphabet="abcdefghijklmnopqrstuvwxyz.", min_size=5, max_size=30),
    )
    @settings(max_examples=100)
    def test_private_values_are_redacted(self, key: str, value: str) -> None:
        output = StringIO()
        logger = AuditLogger(output_stream=output)

        entry = logger.log(LogLevel.INFO, "Orchestrator", "resolved", {key: value})

        assert entry.data[key] == AuditLogger.REDACTED_VALUE
        assert json.loads(output.getvalue())["data"] == {key: AuditLogger.REDACTED_VALUE}
        assert f'"{key}": {json.dumps(value)}' not in output.getvalue()

    @given(data=plain_data_strategy())
    @settings(max_examples=50)
    def test_plain_values_pass_through(self, data: dict) -> None:
        assert AuditLogger().mask_sensitive_data(data) == data

    def test_lists_of_dicts_are_masked(self) -> None:
        masked = AuditLogger().mask_sensitive_data({"items": [{"token": "t"}, 3]})

        assert masked == {"items": [{"token": AuditLogger.MASK_VALUE}, 3]}


class TestErrorLogging:
    @given(status=st.sampled_from([400, 429, 500, 503]))
    @settings(max_examples=20)
    def test_log_error_records_type_and_status(self, status: int) -> None:
        logger = AuditLogger(output_stream=StringIO())

        entry = logger.log_error(
            "Handler",
            "failed",
            error=RuntimeError("boom"),
            response_status_code=status,
            additional_data={"attempts": 2},
        )

        assert entry.level is LogLevel.ERROR
        assert entry.data == {"attempts": 2, "error_type": "RuntimeError", "response_status_code": status}

    def test_entries_are_kept_and_cleared(self) -> None:
        logger = AuditLogger(output_stream=StringIO())
        logger.log(LogLevel.WARN, "C", "one")
        logger.log(LogLevel.ERROR, "C", "two")

        assert [e.message for e in logger.entries] == ["one", "two"]

        logger.clear_entries()

        assert logger.entries == []

    @given(limit=st.integers(min_value=1, max_value=20), extra=st.integers(min_value=1, max_value=20))
    @settings(max_examples=30)
    def test_retention_keeps_most_recent(self, limit: int, extra: int) -> None:
        logger = AuditLogger(output_stream=StringIO(), max_entries=limit)

        for i in range(limit + extra):
            logger.log(LogLevel.INFO, "C", str(i))

        assert [e.message for e in logger.entries] == [str(i) for i in range(extra, limit + extra)]

    def test_default_retention_is_bounded(self) -> None:
        logger = AuditLogger(output_stream=StringIO())

        for _ in range(AuditLogger.DEFAULT_MAX_ENTRIES + 5):
            logger.log(LogLevel.INFO, "C", "m")

        assert len(logger.entries) == AuditLogger.DEFAULT_MAX_ENTRIES
