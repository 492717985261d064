"""
MQTT Command Tests
==================

Tests de comandos de servicio del Control Plane.

Invariantes testeadas:
1. Registry básico: register, execute, is_available
2. CommandNotAvailableError cuando comando no existe
3. STOP activa shutdown_event y publica "stopped"
4. STATS publica snapshot del coordinator
"""
from unittest.mock import MagicMock

import pytest

from crop_decimate.app import CropDecimateController
from crop_decimate.config import CropDecimateConfig
from crop_decimate.control import CommandRegistry, CommandNotAvailableError


@pytest.mark.unit
@pytest.mark.mqtt
class TestCommandRegistry:
    """Tests de CommandRegistry (infraestructura)"""

    def test_register_and_execute(self):
        """
        Invariante: Comando registrado debe ejecutarse correctamente.
        """
        registry = CommandRegistry()

        executed = []
        registry.register('status', lambda: executed.append(True), "Publica estado")
        registry.execute('status')

        assert len(executed) == 1, "Handler debe ejecutarse una vez"

    def test_execute_unregistered_raises_error(self):
        registry = CommandRegistry()
        registry.register('status', lambda: None)

        with pytest.raises(CommandNotAvailableError) as exc_info:
            registry.execute('reboot')

        assert "reboot" in str(exc_info.value)
        assert "status" in str(exc_info.value)

    def test_commands_are_case_insensitive(self):
        registry = CommandRegistry()
        registry.register('STOP', lambda: "stopped")

        assert registry.is_available('stop')
        assert registry.execute('Stop') == "stopped"

    def test_register_overwrites(self):
        registry = CommandRegistry()
        registry.register('stats', lambda: 1)
        registry.register('stats', lambda: 2)

        assert registry.execute('stats') == 2
        assert registry.available_commands == {'stats'}

    def test_get_help(self):
        registry = CommandRegistry()
        registry.register('stop', lambda: None, "Detiene el servicio")

        assert registry.get_help() == {'stop': "Detiene el servicio"}


@pytest.fixture
def controller():
    """Controller con componentes mockeados (sin MQTT real)"""
    controller = CropDecimateController(CropDecimateConfig(), builder=MagicMock())
    controller.control_plane = MagicMock()
    controller.control_plane.command_registry = CommandRegistry()
    controller.coordinator = MagicMock()
    controller.coordinator.stats.return_value = {"state": "idle", "published": 0}
    controller.data_plane = MagicMock()
    controller.data_plane.get_stats.return_value = {"subscriber_count": 0}
    controller.frame_source = MagicMock()
    controller.frame_source.get_stats.return_value = {"active": False}
    controller._setup_control_commands()
    return controller


@pytest.mark.unit
@pytest.mark.mqtt
class TestServiceCommands:
    """Tests de handlers del controller"""

    def test_registered_commands(self, controller):
        assert controller.control_plane.command_registry.available_commands == {
            'status', 'stats', 'stop'
        }

    def test_stop_sets_shutdown_event(self, controller):
        """
        Invariante CRÍTICO: STOP activa shutdown_event (sale del main loop).
        """
        assert not controller.shutdown_event.is_set()

        controller.control_plane.command_registry.execute('stop')

        assert controller.shutdown_event.is_set()
        controller.control_plane.publish_status.assert_called_once_with("stopped")

    def test_status_publishes_running(self, controller):
        controller.control_plane.command_registry.execute('status')

        controller.control_plane.publish_status.assert_called_once_with("running")

    def test_stats_publishes_snapshot(self, controller):
        controller.control_plane.command_registry.execute('stats')

        args, kwargs = controller.control_plane.publish_status.call_args
        assert args == ("running",)
        assert kwargs["details"]["delivery"] == {"state": "idle", "published": 0}
        assert kwargs["details"]["data_plane"] == {"subscriber_count": 0}
        assert kwargs["details"]["frame_source"] == {"active": False}
