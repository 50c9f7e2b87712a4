"""Tests for alert persistence and operator fan-out."""

import pytest
from fakes import FakeDatabase, RecordingSink

from regwatch.processing.alerts import AlertService, format_notification
from regwatch.processing.models import Alert, Severity, SyncSource


def _alert(severity: Severity = Severity.warning, **overrides: object) -> Alert:
    values: dict[str, object] = {
        "source": SyncSource.CMS,
        "severity": severity,
        "category": "federal_policy",
        "title": "Telehealth rule change",
        "description": "CMS changed the telehealth rule.",
        "source_url": "https://www.cms.gov/news/telehealth",
    }
    values.update(overrides)
    return Alert(**values)  # type: ignore[arg-type]


class TestFormatNotification:
    def test_title_and_body(self) -> None:
        title, body = format_notification(_alert(Severity.critical))

        assert title == "[Compliance CRITICAL] Telehealth rule change"
        assert "Source: CMS" in body
        assert "Category: federal_policy" in body
        assert "CMS changed the telehealth rule." in body
        assert body.endswith("Source: https://www.cms.gov/news/telehealth")

    def test_no_source_url(self) -> None:
        _, body = format_notification(_alert(source_url=None))
        assert "https://" not in body


class TestAlertService:
    async def test_persists_and_pages_warning(
        self, fake_db: FakeDatabase, sink: RecordingSink, alert_service: AlertService
    ) -> None:
        alert_id = await alert_service.create_alert(_alert(Severity.warning))

        assert alert_id == 1
        assert len(fake_db.alerts) == 1
        assert len(sink.calls) == 1
        assert sink.calls[0][0].startswith("[Compliance WARNING]")

    async def test_info_is_not_paged(
        self, fake_db: FakeDatabase, sink: RecordingSink, alert_service: AlertService
    ) -> None:
        await alert_service.create_alert(_alert(Severity.info))

        assert len(fake_db.alerts) == 1
        assert sink.calls == []

    @pytest.mark.parametrize(
        "failing_sink",
        [RecordingSink(delivered=False), RecordingSink(error=RuntimeError("telegram down"))],
    )
    async def test_sink_failure_is_swallowed(
        self, fake_db: FakeDatabase, failing_sink: RecordingSink
    ) -> None:
        service = AlertService(fake_db, sink=failing_sink)  # type: ignore[arg-type]

        alert_id = await service.create_alert(_alert(Severity.critical))

        assert alert_id == 1
        assert fake_db.alerts[0].severity == Severity.critical
        assert len(failing_sink.calls) == 1
