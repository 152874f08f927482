"""Tests for tcf_manager.core.analyst and the LLM provider router."""

from unittest.mock import AsyncMock, patch

import pytest

from tcf_manager.config import settings
from tcf_manager.core import llm
from tcf_manager.core.analyst import analyze_reports, build_report_context
from tcf_manager.data.models import TCF, Member, Report

MEMBERS = [Member(id="m1", name="John Doe")]
TCFS = [TCF(id="t1", name="Safety Check")]
REPORTS = [
    Report(id="r1", member_id="m1", tcf_id="t1", start_time="09:00", description="ok", timestamp=1_700_000_000_000),
    Report(id="r2", member_id="gone", tcf_id="t1", timestamp=1_700_000_000_000),
]


class TestBuildReportContext:
    def test_one_line_per_report(self):
        lines = build_report_context(REPORTS, MEMBERS, TCFS).splitlines()
        assert len(lines) == 2
        assert "Time: 09:00" in lines[0]
        assert "Member: John Doe" in lines[0]
        assert "TCF: Safety Check" in lines[0]
        assert "Description: ok" in lines[0]

    def test_unresolved_references(self):
        line = build_report_context(REPORTS, MEMBERS, TCFS).splitlines()[1]
        assert "Member: Unknown" in line
        assert "Time: N/A" in line
        assert "Description: N/A" in line

    def test_out_of_range_timestamp(self):
        report = Report(member_id="m1", tcf_id="t1", timestamp=10**20)
        assert build_report_context([report], MEMBERS, TCFS).startswith("Date: N/A, ")


class TestAnalyzeReports:
    @pytest.mark.asyncio
    async def test_missing_key(self):
        with patch("tcf_manager.core.llm.is_configured", return_value=False), \
             patch("tcf_manager.core.llm.complete", AsyncMock()) as complete:
            result = await analyze_reports(REPORTS, MEMBERS, TCFS)
        assert result == "API Key is missing. Please configure your environment."
        complete.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_key_in_persian(self):
        with patch("tcf_manager.core.llm.is_configured", return_value=False):
            result = await analyze_reports(REPORTS, MEMBERS, TCFS, language="fa")
        assert result == "کلید API وجود ندارد. لطفا محیط خود را تنظیم کنید."

    @pytest.mark.asyncio
    async def test_success(self):
        complete = AsyncMock(return_value="  Summary text  ")
        with patch("tcf_manager.core.llm.is_configured", return_value=True), \
             patch("tcf_manager.core.llm.complete", complete):
            result = await analyze_reports(REPORTS, MEMBERS, TCFS)
        assert result == "Summary text"
        system, user_message = complete.call_args.args
        assert "Provide the response in English." in system
        assert user_message.startswith("Data:\n")
        assert "Safety Check" in user_message

    @pytest.mark.asyncio
    async def test_persian_instruction(self):
        complete = AsyncMock(return_value="خلاصه")
        with patch("tcf_manager.core.llm.is_configured", return_value=True), \
             patch("tcf_manager.core.llm.complete", complete):
            await analyze_reports(REPORTS, MEMBERS, TCFS, language="fa")
        assert "Persian (Farsi)" in complete.call_args.args[0]

    @pytest.mark.asyncio
    async def test_provider_error(self):
        with patch("tcf_manager.core.llm.is_configured", return_value=True), \
             patch("tcf_manager.core.llm.complete", AsyncMock(side_effect=RuntimeError("boom"))):
            result = await analyze_reports(REPORTS, MEMBERS, TCFS)
        assert result == "Failed to analyze reports due to an error."

    @pytest.mark.asyncio
    async def test_imported_report_with_huge_timestamp(self):
        complete = AsyncMock(return_value="Summary")
        report = Report(member_id="m1", tcf_id="t1", timestamp=10**20)
        with patch("tcf_manager.core.llm.is_configured", return_value=True), \
             patch("tcf_manager.core.llm.complete", complete):
            result = await analyze_reports([report], MEMBERS, TCFS)
        assert result == "Summary"
        assert "Date: N/A" in complete.call_args.args[1]

    @pytest.mark.asyncio
    async def test_empty_response(self):
        with patch("tcf_manager.core.llm.is_configured", return_value=True), \
             patch("tcf_manager.core.llm.complete", AsyncMock(return_value="")):
            result = await analyze_reports(REPORTS, MEMBERS, TCFS, language="fa")
        assert result == "تحلیلی ایجاد نشد."


class TestProviderSelection:
    @pytest.fixture(autouse=True)
    def _reset_cache(self):
        llm._select_provider.cache_clear()
        yield
        llm._select_provider.cache_clear()

    def test_not_configured_by_default(self):
        assert not llm.is_configured()
        with pytest.raises(llm.LLMNotConfiguredError):
            llm._select_provider()

    def test_placeholder_key_is_not_configured(self, monkeypatch):
        monkeypatch.setattr(settings, "LLM_API_KEY", "your-key-here")
        assert not llm.is_configured()

    def test_default_model_per_provider(self, monkeypatch):
        monkeypatch.setattr(settings, "LLM_API_KEY", "k")
        monkeypatch.setattr(settings, "LLM_PROVIDER", "OpenAI")
        provider = llm._select_provider()
        assert provider.name == "openai"
        assert provider.model == "gpt-4o-mini"

    def test_model_override(self, monkeypatch):
        monkeypatch.setattr(settings, "LLM_API_KEY", "k")
        monkeypatch.setattr(settings, "LLM_MODEL", "gemini-custom")
        assert llm._select_provider().model == "gemini-custom"

    def test_unknown_provider(self, monkeypatch):
        monkeypatch.setattr(settings, "LLM_API_KEY", "k")
        monkeypatch.setattr(settings, "LLM_PROVIDER", "nope")
        with pytest.raises(ValueError):
            llm._select_provider()

    @pytest.mark.asyncio
    async def test_complete_routes_to_provider(self, monkeypatch):
        monkeypatch.setattr(settings, "LLM_API_KEY", "k")
        monkeypatch.setattr(settings, "LLM_PROVIDER", "anthropic")
        fake = AsyncMock(return_value="hi")
        monkeypatch.setitem(llm._PROVIDERS, "anthropic", (fake, "claude-test"))
        assert await llm.complete("sys", "msg", max_tokens=10) == "hi"
        fake.assert_awaited_once_with("k", "claude-test", llm.CompletionRequest("sys", "msg", 10, 0.3))
