"""Tests for the report generation chain (Anthropic mocked)."""

import threading
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from anthropic import APIConnectionError

from roibrain.chains.generate_roi_report import generate_roi_report
from roibrain.core.errors import UpstreamModelError


def _response(text: str | None = '{"insights": []}', input_tokens=1000, output_tokens=500):
    response = MagicMock()
    response.content = [MagicMock(text=text)] if text is not None else []
    response.usage = MagicMock(input_tokens=input_tokens, output_tokens=output_tokens)
    response.stop_reason = "end_turn"
    return response


def _client(create):
    client = MagicMock()
    client.messages.create = create
    return client


@pytest.mark.asyncio
@patch("roibrain.chains.generate_roi_report.log_llm_usage")
@patch("roibrain.chains.generate_roi_report.get_anthropic_client")
async def test_returns_text_and_usage(mock_client, mock_log):
    create = AsyncMock(return_value=_response("  {\"insights\": []}  "))
    mock_client.return_value = _client(create)

    result = await generate_roi_report("prompt", "system", session_id="roi_1", vertical="dental")

    assert result.text == '{"insights": []}'
    assert result.input_tokens == 1000
    assert result.output_tokens == 500
    assert result.cost_usd > 0

    kwargs = create.call_args.kwargs
    assert kwargs["system"] == "system"
    assert kwargs["messages"] == [{"role": "user", "content": "prompt"}]
    assert kwargs["max_tokens"] == 4000

    mock_log.assert_called_once()
    assert mock_log.call_args.kwargs["workflow"] == "roi_brain_report"
    assert mock_log.call_args.kwargs["session_id"] == "roi_1"


@pytest.mark.asyncio
@patch("roibrain.chains.generate_roi_report.log_llm_usage")
@patch("roibrain.chains.generate_roi_report.get_anthropic_client")
async def test_api_error_becomes_upstream_error(mock_client, mock_log):
    request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
    mock_client.return_value = _client(AsyncMock(side_effect=APIConnectionError(request=request)))

    with pytest.raises(UpstreamModelError) as exc_info:
        await generate_roi_report("prompt", "system")

    assert exc_info.value.status_code == 500
    mock_log.assert_not_called()


@pytest.mark.asyncio
@patch("roibrain.chains.generate_roi_report.log_llm_usage")
@patch("roibrain.chains.generate_roi_report.get_anthropic_client")
async def test_empty_content_is_an_upstream_error(mock_client, mock_log):
    mock_client.return_value = _client(AsyncMock(return_value=_response(None)))

    with pytest.raises(UpstreamModelError):
        await generate_roi_report("prompt", "system")

    # Usage is still recorded for the billed call
    mock_log.assert_called_once()


@pytest.mark.asyncio
@patch("roibrain.chains.generate_roi_report.log_llm_usage")
@patch("roibrain.chains.generate_roi_report.get_anthropic_client")
async def test_usage_is_logged_off_the_event_loop_thread(mock_client, mock_log):
    threads = []
    mock_log.side_effect = lambda **kwargs: threads.append(threading.current_thread())
    mock_client.return_value = _client(AsyncMock(return_value=_response()))

    await generate_roi_report("prompt", "system")

    assert len(threads) == 1
    assert threads[0] is not threading.current_thread()
