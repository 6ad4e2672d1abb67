"""Tests for composition root DI container."""

from redeploy.composition_root import RedeployContainer, create_container
from redeploy.infrastructure.config import DeploymentSettings, RedeployConfig


class TestCompositionRoot:
    def test_create_container(self):
        container = create_container()

        assert isinstance(container, RedeployContainer)
        assert container.service_controller is not None
        assert container.file_operations is not None
        assert container.backup_manager is not None
        assert container.audit_log is not None
        assert container.event_bus is not None
        assert container.telemetry is not None
        assert container.deploy_service is not None

    def test_deploy_service_wiring(self):
        container = create_container()
        service = container.deploy_service

        assert service.service_controller is container.service_controller
        assert service.file_operations is container.file_operations
        assert service.backup_manager is container.backup_manager
        assert service.audit_log is container.audit_log
        assert service.event_bus is container.event_bus
        assert service.telemetry is container.telemetry

    def test_backup_manager_shares_file_operations(self):
        container = create_container()
        assert container.backup_manager.file_operations is container.file_operations

    def test_settings_flow_into_adapters(self, tmp_path):
        config = RedeployConfig(
            deployment=DeploymentSettings(
                log_file_path=str(tmp_path / "audit.log"),
                status_settle_seconds=0.5,
                max_parallelism=3,
                use_sudo=True,
            )
        )

        container = create_container(config)

        assert container.audit_log.path == str(tmp_path / "audit.log")
        assert container.deploy_service.status_settle_seconds == 0.5
        assert container.backup_manager.concurrency_limit == 3
        assert container.service_controller.use_sudo is True
        assert container.telemetry.initialized is False
