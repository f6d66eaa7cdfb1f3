"""Tests for LLM cost estimation and usage logging."""

from unittest.mock import MagicMock, patch

from roibrain.core.llm_usage import estimate_cost, log_llm_usage


def test_estimate_cost_known_model():
    assert estimate_cost("claude-sonnet-4-5-20250929", 1_000_000, 1_000_000) == 18.0


def test_estimate_cost_prefix_match_and_unknown():
    assert estimate_cost("claude-sonnet-4-5-20991231", 1_000_000, 0) == 3.0
    assert estimate_cost("some-other-model", 1000, 1000) == 0.0


@patch("roibrain.core.llm_usage.get_supabase")
def test_log_llm_usage_inserts_row(mock_get_supabase):
    sb = MagicMock()
    mock_get_supabase.return_value = sb

    log_llm_usage(
        workflow="roi_brain_report",
        model="claude-sonnet-4-5-20250929",
        tokens_input=100,
        tokens_output=50,
        session_id="roi_1",
        vertical="dental",
    )

    sb.table.assert_called_once_with("llm_usage_log")
    row = sb.table.return_value.insert.call_args.args[0]
    assert row["session_id"] == "roi_1"
    assert row["vertical"] == "dental"
    assert "chain" not in row


@patch("roibrain.core.llm_usage.get_supabase", side_effect=RuntimeError("no db"))
def test_log_llm_usage_never_raises(mock_get_supabase):
    log_llm_usage(workflow="w", model="m", tokens_input=1, tokens_output=1)
