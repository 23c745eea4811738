"""
Tests for the alerts CLI command.
"""

import json
from unittest.mock import patch


class TestAlertsCommand:
    """Test the alerts command against the sample data."""

    def test_summary(self, invoke, seeded_db):
        result = invoke("alerts")

        assert result.exit_code == 0, result.output
        assert "Urgent" in result.output
        assert "1 item needs immediate attention" in result.output
        assert "14.50 unbilled hours are ready to invoice" in result.output

    def test_json(self, invoke, seeded_db):
        result = invoke("alerts", "--json")

        data = json.loads(result.output)
        assert data["urgent"] == 1
        assert data["upcoming"] == 2
        assert data["overdue"] == 0
        assert len(data["suggestions"]) == 4
        assert "generatedAt" in data

    def test_notifications(self, invoke, seeded_db):
        result = invoke("alerts", "--notifications", "--json")

        notifications = json.loads(result.output)
        assert [n["type"] for n in notifications] == [
            "project_overdue",
            "task_due",
            "contract_expiring",
        ]
        assert notifications[0]["entityType"] == "project"

    def test_notifications_table(self, invoke, seeded_db):
        result = invoke("alerts", "--notifications")

        assert result.exit_code == 0
        assert "Project overdue" in result.output

    def test_no_notifications(self, invoke):
        invoke("init-db")

        result = invoke("alerts", "--notifications")

        assert "No notifications." in result.output

    def test_sync(self, invoke, seeded_db):
        first = invoke("alerts", "--sync")
        second = invoke("alerts", "--sync")

        assert "3 new notifications stored" in first.output
        assert "0 new notifications stored" in second.output

    def test_watch(self, invoke, seeded_db):
        with patch("time.sleep") as sleep:
            result = invoke("alerts", "--watch", "--iterations", "3", "--interval", "5")

        assert result.exit_code == 0, result.output
        assert result.output.count("Alerts at") == 3
        assert sleep.call_count == 2
        sleep.assert_called_with(5.0)

    def test_invalid_interval(self, invoke, seeded_db):
        result = invoke("alerts", "--watch", "--interval", "0")

        assert result.exit_code == 2
