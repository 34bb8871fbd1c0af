from __future__ import annotations

from unittest.mock import Mock, patch

import pytest
from sqlalchemy.exc import OperationalError

from suite.core.exceptions import ServiceException
from suite.monitoring.prometheus_metrics import REGISTRY, prometheus_metrics
from suite.services import base as base_module
from suite.services.base import BaseService


class _ExampleService(BaseService):
    @BaseService.measure_operation("do_work")
    def do_work(self, fail: bool = False) -> str:
        if fail:
            raise RuntimeError("boom")
        return "done"


class TestBaseService:
    def test_measure_operation_records_success_and_failure(self) -> None:
        service = _ExampleService(Mock())
        service.reset_metrics()

        assert service.do_work() == "done"
        with pytest.raises(RuntimeError):
            service.do_work(fail=True)

        metrics = service.get_metrics()["do_work"]
        assert metrics["count"] == 2
        assert metrics["success_count"] == 1
        assert metrics["failure_count"] == 1
        assert metrics["success_rate"] == 0.5

    def test_measure_operation_exports_prometheus_counters(self) -> None:
        service = _ExampleService(Mock())
        labels = {"service": "_ExampleService", "operation": "do_work", "error_type": "RuntimeError"}
        before = REGISTRY.get_sample_value("suite_errors_total", labels) or 0.0

        with pytest.raises(RuntimeError):
            service.do_work(fail=True)

        assert REGISTRY.get_sample_value("suite_errors_total", labels) == before + 1

    def test_slow_operation_logs_warning(self) -> None:
        service = _ExampleService(Mock())

        with patch("suite.services.base.time.time", side_effect=[0.0, 2.0]):
            with patch.object(service.logger, "warning") as mock_warning:
                service.do_work()

        mock_warning.assert_called_once()

    def test_metrics_failure_never_breaks_operation(self, monkeypatch) -> None:
        service = _ExampleService(Mock())
        broken = Mock()
        broken.record_service_operation.side_effect = RuntimeError("metrics down")
        monkeypatch.setattr(base_module, "prometheus_metrics", broken)

        assert service.do_work() == "done"

    def test_measure_operation_on_plain_object(self) -> None:
        class Plain:
            logger = Mock()

            @BaseService.measure_operation("plain")
            def run(self) -> int:
                return 7

        assert Plain().run() == 7

    def test_transaction_commits(self) -> None:
        db = Mock()
        service = BaseService(db)

        with service.transaction():
            pass

        db.commit.assert_called_once()
        db.rollback.assert_not_called()

    def test_transaction_wraps_database_errors(self) -> None:
        db = Mock()
        db.commit.side_effect = OperationalError("COMMIT", {}, Exception("disk full"))
        service = BaseService(db)

        with pytest.raises(ServiceException):
            with service.transaction():
                pass

        db.rollback.assert_called_once()

    def test_transaction_reraises_domain_errors(self) -> None:
        db = Mock()
        service = BaseService(db)

        with pytest.raises(ValueError):
            with service.transaction():
                raise ValueError("bad input")

        db.rollback.assert_called_once()
        db.commit.assert_not_called()


def test_metrics_exposition_includes_settlement_counters() -> None:
    prometheus_metrics.record_cancellation_settlement("policy", "partially_refunded")

    body = prometheus_metrics.get_metrics().decode()
    assert "suite_cancellation_settlements_total" in body
    assert 'branch="policy"' in body
    assert prometheus_metrics.get_content_type().startswith("text/plain")
