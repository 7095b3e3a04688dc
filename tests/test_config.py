import pytest

from config import DEFAULT_TOPIC, Config
from models.report import ReportType
from models.request import ResearchRequest


class TestConfigLoad:
    def test_defaults(self, monkeypatch):
        for key in ("GEMINI_API_KEY", "YOUTUBE_API_KEY", "MAX_VIDEOS", "TRANSCRIPT_LANGUAGES"):
            monkeypatch.delenv(key, raising=False)

        config = Config.load()

        assert config.max_videos == 5
        assert config.keyword_count == 5
        assert config.scrape_min_chars == 500
        assert config.transcript_languages == ["en"]
        assert config.missing_credentials() == ["GEMINI_API_KEY", "YOUTUBE_API_KEY"]

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "g")
        monkeypatch.setenv("YOUTUBE_API_KEY", "y")
        monkeypatch.setenv("MAX_VIDEOS", "3")
        monkeypatch.setenv("SCRAPE_TIMEOUT_SECONDS", "2.5")
        monkeypatch.setenv("TRANSCRIPT_LANGUAGES", "en, ur ,")
        monkeypatch.setenv("LOG_LEVEL", "debug")

        config = Config.load()

        assert config.max_videos == 3
        assert config.scrape_timeout == 2.5
        assert config.transcript_languages == ["en", "ur"]
        assert config.log_level == "DEBUG"
        assert config.validate() is None

    def test_invalid_integer_raises(self, monkeypatch):
        monkeypatch.setenv("MAX_VIDEOS", "five")
        with pytest.raises(ValueError, match="MAX_VIDEOS"):
            Config.load()


class TestConfigValidate:
    def test_missing_credentials_named(self):
        error = Config(gemini_api_key="g").validate()
        assert error == "Missing required environment variables: YOUTUBE_API_KEY"

    def test_max_videos_bounded(self, config):
        config.max_videos = 6
        assert "MAX_VIDEOS" in config.validate()
        config.max_videos = 0
        assert "MAX_VIDEOS" in config.validate()

    def test_scrape_bounds(self, config):
        config.scrape_max_chars = 400
        assert "SCRAPE_MAX_CHARS" in config.validate()

    def test_log_format(self, config):
        config.log_format = "xml"
        assert "LOG_FORMAT" in config.validate()


class TestResearchRequest:
    def test_explicit_topic_is_manual(self):
        request = ResearchRequest(topic="  Example Event ", regions={"pakistan": True})
        assert request.resolve_topic() == "Example Event"
        assert request.report_type == ReportType.MANUAL

    def test_regions_joined_in_order(self):
        request = ResearchRequest(regions={"pakistan": True, "palestine": False, "worldwide": True})
        assert request.resolve_topic() == "Pakistan and Global Muslim Issues"
        assert request.report_type == ReportType.WEEKLY

    def test_no_topic_or_regions_uses_default(self):
        request = ResearchRequest(regions={"unknown": True})
        assert request.resolve_topic() == DEFAULT_TOPIC
        assert request.report_type == ReportType.WEEKLY

    def test_accepts_camel_case_keys(self):
        request = ResearchRequest.model_validate({"reportId": "r1", "isPublic": True, "userId": "u"})
        assert request.report_id == "r1"
        assert request.is_public is True
