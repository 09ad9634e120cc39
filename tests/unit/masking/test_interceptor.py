"""Tests for the masking interceptor and its event rewriting."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

import masking_lib
from masking_lib.config import load_settings
from masking_lib.constants import SECRETS_MASK
from masking_lib.event import LogEvent
from masking_lib.interceptor import MaskedDataInterceptor, create_policy, get_default_interceptor

from tests.utils.masking import capture_masking_metrics


def test_messages_without_sensitive_data_are_unchanged(make_interceptor):
    interceptor = make_interceptor()
    message = 'sync finished {"user": "bob", "rows": 42}'

    assert interceptor.apply_mask(message) == message


def test_known_pii_rule_runs_before_the_property_masker(make_interceptor):
    message = 'destination-x > ERROR Received invalid message: {"ssn":"123-45-6789"}'

    with capture_masking_metrics() as snapshot:
        masked = make_interceptor().apply_mask(message)
        metrics = snapshot()

    assert masked == "destination-x > ERROR Received invalid message:" + SECRETS_MASK
    assert "123-45-6789" not in masked
    assert metrics["known_pii_hits"] == {"invalid_message": 1}
    assert metrics["properties_masked_total"] == 0

    properties_only = make_interceptor(rules=())
    assert properties_only.apply_mask(message) == (
        'destination-x > ERROR Received invalid message: {"ssn":"**********"}'
    )


def test_properties_are_masked(make_interceptor):
    masked = make_interceptor().apply_mask('{"PASSWORD": "abc123", "tokens": ["a","b"]}')

    assert masked == '{"PASSWORD":"**********", "tokens":"**********"}'


def test_masking_twice_matches_masking_once(make_interceptor):
    interceptor = make_interceptor()
    message = 'destination-x > ERROR Received invalid message: x\n{"password": "abc"}'

    once = interceptor.apply_mask(message)
    assert interceptor.apply_mask(once) == once


def test_empty_property_set_only_scrubs_known_pii():
    interceptor = MaskedDataInterceptor()

    assert interceptor.masks_properties is False
    assert interceptor.apply_mask('{"password": "abc"}') == '{"password": "abc"}'
    assert interceptor.apply_mask("destination-x > ERROR Received invalid message: abc") == (
        "destination-x > ERROR Received invalid message:" + SECRETS_MASK
    )


def test_internal_failure_returns_the_original_message(make_interceptor, status_records):
    class _BrokenRule:
        name = "broken"

        def apply(self, message, mask):
            raise RuntimeError("boom")

    interceptor = make_interceptor(rules=(_BrokenRule(),))
    message = '{"password": "abc"}'

    with capture_masking_metrics() as snapshot:
        assert interceptor.apply_mask(message) == message
        assert snapshot()["mask_failures"] == 1

    assert any("emitted without redaction" in m for m in status_records.messages)


def test_bytes_are_decoded_before_masking(make_interceptor):
    raw = '{"password": "abc"} é'.encode("utf-8") + b"\xff"

    assert make_interceptor().apply_mask(raw) == '{"password":"**********"} é�'


def test_oversize_messages_are_truncated_without_leaking_cut_values(make_interceptor):
    interceptor = make_interceptor(max_message_length=30)
    message = '{"user": "bob", "password": "abcdefghijklmnop"}'

    with capture_masking_metrics() as snapshot:
        masked = interceptor.apply_mask(message)
        assert snapshot()["truncations"] == 1

    assert masked == '{"user": "bob", "password":"**********"...'
    assert "abc" not in masked


def test_zero_length_limit_disables_truncation(make_interceptor):
    message = '{"password": "abc"} ' + "x" * 100

    masked = make_interceptor(max_message_length=0).apply_mask(message)

    assert masked == '{"password":"**********"} ' + "x" * 100


def test_rewrite_returns_a_new_event_with_only_the_message_changed(make_interceptor):
    event = LogEvent(
        message='{"password": "abc"}',
        level="ERROR",
        logger_name="worker",
        timestamp=1700000000.5,
        thread_name="pool-1",
        stack_info="stack",
        context={"job_id": 7},
    )

    rewritten = make_interceptor().rewrite(event)

    assert rewritten is not event
    assert rewritten.message == '{"password":"**********"}'
    assert event.message == '{"password": "abc"}'
    assert (rewritten.level, rewritten.logger_name, rewritten.timestamp) == ("ERROR", "worker", 1700000000.5)
    assert (rewritten.thread_name, rewritten.stack_info) == ("pool-1", "stack")
    assert dict(rewritten.context) == {"job_id": 7}


def test_event_context_is_read_only():
    event = LogEvent(message="m", context={"a": 1})

    with pytest.raises(TypeError):
        event.context["a"] = 2  # type: ignore[index]


def test_event_from_record_collects_extra_fields():
    record = logging.makeLogRecord(
        {"name": "svc", "levelno": logging.WARNING, "levelname": "WARNING", "msg": "hi %s", "args": ("there",), "tenant": "acme"}
    )

    event = LogEvent.from_record(record)

    assert event.message == "hi there"
    assert event.level == "WARNING"
    assert event.logger_name == "svc"
    assert dict(event.context) == {"tenant": "acme"}


def test_rewrite_record_renders_and_masks_a_copy(make_interceptor):
    record = logging.LogRecord(
        "app", logging.INFO, __file__, 10, "payload %s", ('{"password": "abc"}',), None
    )
    record.tenant = "acme"

    rewritten = make_interceptor().rewrite_record(record)

    assert rewritten is not record
    assert rewritten.msg == 'payload {"password":"**********"}'
    assert rewritten.args is None
    assert rewritten.getMessage() == 'payload {"password":"**********"}'
    assert record.msg == "payload %s"
    assert (rewritten.name, rewritten.levelno, rewritten.created) == (record.name, record.levelno, record.created)
    assert rewritten.tenant == "acme"


def test_rewrite_record_survives_bad_format_arguments(make_interceptor):
    record = logging.LogRecord("app", logging.INFO, __file__, 10, "count %d", ("x",), None)

    assert make_interceptor().rewrite_record(record).msg == "count %d"


def test_create_policy_loads_catalog_and_settings(catalog_file):
    policy = create_policy(str(catalog_file), settings=load_settings({"LOG_MASK_TOKEN": "[hidden]"}))

    assert policy.properties == frozenset({"password", "ssn", "tokens", "port"})
    assert policy.apply_mask('{"port": 5432}') == '{"port":"[hidden]"}'


def test_create_policy_with_missing_catalog_keeps_known_pii_rules(tmp_path):
    policy = create_policy(str(tmp_path / "missing.yaml"))

    assert policy.masks_properties is False
    assert policy.apply_mask('{"password": "abc"}') == '{"password": "abc"}'
    assert policy.apply_mask("destination-x > ERROR Received invalid message: abc").endswith(SECRETS_MASK)


def test_create_policy_uses_rules_from_the_catalog(write_catalog):
    path = write_catalog(
        {"properties": [], "known_pii_rules": [{"name": "card", "message_prefix": r"Card\s+rejected:"}]}
    )

    policy = create_policy(str(path))

    assert [rule.name for rule in policy.rules] == ["card"]
    assert policy.apply_mask("destination-x > ERROR Card rejected: 4111") == (
        "destination-x > ERROR Card rejected:" + SECRETS_MASK
    )


def test_create_policy_applies_the_line_length_setting(catalog_file):
    message = "destination-x > ERROR Received it; Received invalid message: " + "x" * 64
    settings = load_settings({"LOG_MASK_MAX_LINE_LENGTH": "32"})

    policy = create_policy(str(catalog_file), settings=settings)

    assert policy.apply_mask(message) == "destination-x > ERROR " + SECRETS_MASK


def test_default_interceptor_is_built_once_across_threads(catalog_file):
    masking_lib.configure(spec_mask_file=str(catalog_file))
    barrier = threading.Barrier(8)

    def _lookup():
        barrier.wait()
        return get_default_interceptor()

    with ThreadPoolExecutor(max_workers=8) as pool:
        instances = list(pool.map(lambda _: _lookup(), range(8)))

    assert len({id(instance) for instance in instances}) == 1
    assert "password" in instances[0].properties


def test_concurrent_masking_matches_sequential_results(make_interceptor):
    interceptor = make_interceptor()
    messages = []
    for index in range(200):
        if index % 3 == 0:
            messages.append(f'{{"password": "secret-{index}", "id": {index}}}')
        elif index % 3 == 1:
            messages.append(f"destination-{index} > ERROR Received invalid message: payload-{index}")
        else:
            messages.append(f"plain message {index}")

    expected = [interceptor.apply_mask(message) for message in messages]

    with ThreadPoolExecutor(max_workers=16) as pool:
        results = list(pool.map(interceptor.apply_mask, messages))

    assert results == expected
    assert not any(f"secret-{index}" in result for index, result in enumerate(results))
