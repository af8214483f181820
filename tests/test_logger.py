from __future__ import annotations

from loguru import logger

from layered_search.services import logger as log_service


def _capture() -> tuple[list, int]:
    messages: list = []
    sink_id = logger.add(messages.append, level="DEBUG", format="{level}|{message}")
    return messages, sink_id


def test_configure_logging_creates_log_dir(tmp_path):
    target = tmp_path / "nested" / "logs"

    log_service.configure_logging(level="DEBUG", log_dir=str(target))
    try:
        assert target.is_dir()
    finally:
        log_service.configure_logging(log_dir="")


def test_empty_log_dir_skips_file_sink(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    log_service.configure_logging(log_dir="")

    assert list(tmp_path.iterdir()) == []


def test_retrieval_failure_is_a_warning():
    messages, sink_id = _capture()
    try:
        log_service.log_retrieval_failure("fetch", "https://example.com", "network", "timed out")
    finally:
        logger.remove(sink_id)

    assert len(messages) == 1
    level, text = str(messages[0]).split("|", 1)
    assert level == "WARNING"
    assert "RETRIEVAL_FAILED" in text
    assert "'kind': 'network'" in text


def test_llm_call_failure_is_an_error():
    messages, sink_id = _capture()
    try:
        log_service.log_llm_call("openai/gpt-4o-mini", "test", status="error", error="quota")
        log_service.log_llm_call("openai/gpt-4o-mini", "test", input_tokens=10, output_tokens=5)
    finally:
        logger.remove(sink_id)

    assert str(messages[0]).startswith("ERROR|LLM_CALL_FAILED")
    assert str(messages[1]).startswith("INFO|LLM_CALL:")
    assert "'input_tokens': 10" in str(messages[1])


def test_session_step_carries_session_id():
    messages, sink_id = _capture()
    try:
        log_service.log_session_step("abc123", "layer", "completed", {"layer": 2})
    finally:
        logger.remove(sink_id)

    assert "'session_id': 'abc123'" in str(messages[0])
    assert "'layer': 2" in str(messages[0])
