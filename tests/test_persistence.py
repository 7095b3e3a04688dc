import asyncio

import pytest

from errors import PersistenceFailure
from models.news import Source
from models.report import ReportContent, ReportStatus, ReportType
from models.request import ResearchRequest
from models.video import Video
from persistence import ReportPersistence


def _content(summary: str, videos: int = 0, status=ReportStatus.COMPLETED) -> ReportContent:
    return ReportPersistence.build_content(
        summary=summary,
        ideas="ideas",
        sources=[Source(title="A", url="http://a")],
        videos=[Video(external_id=f"v{i}", title="t", transcript="x") for i in range(videos)],
        queries=["Alpha"],
        status=status,
    )


class TestCreate:
    @pytest.mark.asyncio
    async def test_create_returns_new_id_with_completed_status(self, store):
        persistence = ReportPersistence(store)

        report_id = await persistence.save(
            _content("first", videos=2), topic="Example Event", report_type=ReportType.MANUAL,
            is_public=True, user_id="u1",
        )

        report = store.get_report(report_id)
        assert report is not None
        assert report.status == ReportStatus.COMPLETED
        assert report.type == ReportType.MANUAL
        assert report.video_count == 2
        assert report.sources[0].url == "http://a"
        assert report.is_public is True
        assert report.user_id == "u1"

    @pytest.mark.asyncio
    async def test_each_create_gets_a_fresh_id(self, store):
        persistence = ReportPersistence(store)
        first = await persistence.save(_content("a"), topic="T", report_type=ReportType.WEEKLY)
        second = await persistence.save(_content("b"), topic="T", report_type=ReportType.WEEKLY)
        assert first != second

    def test_persisted_videos_capped_at_five(self):
        content = _content("s", videos=8)
        assert len(content.videos) == 5
        assert content.video_count == 5


class TestUpdate:
    @pytest.mark.asyncio
    async def test_second_update_wins_and_ownership_unchanged(self, store):
        persistence = ReportPersistence(store)
        report_id = await persistence.save(
            _content("first"), topic="T", report_type=ReportType.MANUAL, is_public=True, user_id="owner",
        )
        original = store.get_report(report_id)

        await persistence.save(_content("second"), topic="T", report_type=ReportType.MANUAL, report_id=report_id)
        await persistence.save(
            _content("third"), topic="other", report_type=ReportType.WEEKLY, report_id=report_id,
            is_public=False, user_id="intruder",
        )

        report = store.get_report(report_id)
        assert report.summary == "third"
        assert report.status == ReportStatus.COMPLETED
        assert report.user_id == "owner"
        assert report.is_public is True
        assert report.created_at == original.created_at
        assert report.type == ReportType.MANUAL
        assert report.topic == "T"

    @pytest.mark.asyncio
    async def test_update_unknown_id_fails(self, store):
        with pytest.raises(PersistenceFailure):
            await ReportPersistence(store).save(_content("x"), topic="T", report_type=ReportType.MANUAL, report_id="missing")

    @pytest.mark.asyncio
    async def test_completed_report_never_regresses_to_generating(self, store):
        persistence = ReportPersistence(store)
        report_id = await persistence.save(_content("done"), topic="T", report_type=ReportType.MANUAL)

        with pytest.raises(PersistenceFailure):
            await persistence.save(
                ReportContent(status=ReportStatus.GENERATING), topic="T",
                report_type=ReportType.MANUAL, report_id=report_id,
            )

        report = store.get_report(report_id)
        assert report.status == ReportStatus.COMPLETED
        assert report.summary == "done"

    @pytest.mark.asyncio
    async def test_concurrent_updates_to_same_id_both_apply(self, store):
        persistence = ReportPersistence(store)
        report_id = await persistence.save(_content("start"), topic="T", report_type=ReportType.MANUAL)

        await asyncio.gather(
            persistence.save(_content("a"), topic="T", report_type=ReportType.MANUAL, report_id=report_id),
            persistence.save(_content("b"), topic="T", report_type=ReportType.MANUAL, report_id=report_id),
        )

        assert store.get_report(report_id).summary in ("a", "b")

    @pytest.mark.asyncio
    async def test_racing_writers_cannot_regress_completed_report(self, store):
        report_id = await ReportPersistence(store).save(_content("start"), topic="T", report_type=ReportType.MANUAL)

        # Separate instances, as each entry point call builds its own
        results = await asyncio.gather(
            ReportPersistence(store).save(_content("a"), topic="T", report_type=ReportType.MANUAL, report_id=report_id),
            ReportPersistence(store).save(
                ReportContent(status=ReportStatus.GENERATING), topic="T",
                report_type=ReportType.MANUAL, report_id=report_id,
            ),
            return_exceptions=True,
        )

        assert results[0] == report_id
        assert isinstance(results[1], PersistenceFailure)
        report = store.get_report(report_id)
        assert report.status == ReportStatus.COMPLETED
        assert report.summary == "a"


class TestPlaceholder:
    @pytest.mark.asyncio
    async def test_placeholder_is_generating_then_completed(self, store):
        persistence = ReportPersistence(store)
        request = ResearchRequest(regions={"pakistan": True}, user_id="u2")

        report_id = await persistence.create_placeholder(request, "Pakistan")
        placeholder = store.get_report(report_id)
        assert placeholder.status == ReportStatus.GENERATING
        assert placeholder.type == ReportType.WEEKLY
        assert placeholder.user_id == "u2"

        await persistence.save(_content("final"), topic="Pakistan", report_type=ReportType.WEEKLY, report_id=report_id)
        assert store.get_report(report_id).status == ReportStatus.COMPLETED
