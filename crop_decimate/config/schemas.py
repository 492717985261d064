"""
Pydantic Configuration Schemas
================================

Type-safe configuration validation usando Pydantic v2.

Usage:
    config = CropDecimateConfig.from_yaml("config/crop_decimate/config.yaml")
    config.delivery.max_video_framerate  # Type-safe access
"""
from typing import Literal, Optional
from pathlib import Path
from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import os


# ============================================================================
# Delivery Configuration
# ============================================================================

class DeliverySettings(BaseModel):
    """Frame subscription + publish rate settings"""
    queue_size: int = Field(
        default=5,
        ge=1,
        description="Upstream frame queue depth (drop-oldest)"
    )
    max_video_framerate: float = Field(
        default=100.0,
        gt=0.0,
        description="Hard ceiling (Hz) for RATE_LIMITED requests"
    )


# ============================================================================
# MQTT Configuration
# ============================================================================

class MQTTBrokerSettings(BaseSettings):
    """
    MQTT broker connection settings.

    Lee MQTT_HOST / MQTT_PORT / MQTT_USERNAME / MQTT_PASSWORD del entorno
    (y de .env) cuando no vienen en el YAML.
    """
    model_config = SettingsConfigDict(
        env_prefix="MQTT_",
        env_file=".env",
        extra="ignore",
    )

    host: str = Field(
        default="localhost",
        description="MQTT broker hostname"
    )
    port: int = Field(
        default=1883,
        ge=1,
        le=65535,
        description="MQTT broker port"
    )
    username: Optional[str] = Field(
        default=None,
        description="MQTT username (optional, from env)"
    )
    password: Optional[str] = Field(
        default=None,
        description="MQTT password (optional, from env)"
    )


class MQTTTopicsSettings(BaseModel):
    """MQTT topic configuration"""
    input: str = Field(
        default="camera/image_raw",
        description="Upstream frames (image + camera_info)"
    )
    output: str = Field(
        default="camera_out/image_raw",
        description="Cropped/decimated frames (QoS data)"
    )
    requests: str = Field(
        default="camera_out/image_request",
        description="Image requests topic (QoS control)"
    )
    commands: str = Field(
        default="camera_out/commands",
        description="Service commands topic (status/stats/stop)"
    )
    status: str = Field(
        default="camera_out/status",
        description="Retained service status topic"
    )
    presence: str = Field(
        default="camera_out/presence",
        description="Downstream consumer connect/disconnect announcements"
    )

    @model_validator(mode='after')
    def validate_input_output_differ(self):
        """Input y output no pueden coincidir (loop de republicación)"""
        if self.input == self.output:
            raise ValueError(
                f"input topic ({self.input}) must differ from output topic"
            )
        return self


class MQTTQoSSettings(BaseModel):
    """MQTT QoS levels"""
    control: Literal[0, 1, 2] = Field(
        default=1,
        description="Control plane QoS (requests, commands, presence)"
    )
    data: Literal[0, 1, 2] = Field(
        default=0,
        description="Data plane QoS (frames)"
    )


class MQTTSettings(BaseModel):
    """Complete MQTT configuration"""
    broker: MQTTBrokerSettings = Field(default_factory=MQTTBrokerSettings)
    topics: MQTTTopicsSettings = Field(default_factory=MQTTTopicsSettings)
    qos: MQTTQoSSettings = Field(default_factory=MQTTQoSSettings)
    client_id_prefix: str = Field(
        default="crop_decimate",
        min_length=1,
        description="Prefix for MQTT client ids (control/data/source)"
    )


# ============================================================================
# Logging Configuration
# ============================================================================

class LoggingSettings(BaseModel):
    """Logging configuration (JSON structured logging)"""
    level: Literal['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'] = Field(
        default='INFO',
        description="Log level"
    )
    json_indent: Optional[int] = Field(
        default=None,
        ge=0,
        le=4,
        description="JSON indent for pretty-print (None=compact, 2=readable)"
    )
    paho_level: Literal['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'] = Field(
        default='WARNING',
        description="Paho MQTT library log level"
    )
    file: Optional[str] = Field(
        default=None,
        description="Path to log file (None=stdout). If specified, enables file rotation."
    )
    max_bytes: int = Field(
        default=10485760,  # 10 MB
        ge=1024,
        description="Maximum bytes per log file before rotation"
    )
    backup_count: int = Field(
        default=5,
        ge=0,
        description="Number of backup log files to keep"
    )


# ============================================================================
# Root Configuration
# ============================================================================

class CropDecimateConfig(BaseModel):
    """
    Root configuration with full validation.

    Loads from YAML and validates all settings.
    Environment variables override YAML for credentials.
    """
    delivery: DeliverySettings = Field(default_factory=DeliverySettings)
    mqtt: MQTTSettings = Field(default_factory=MQTTSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @classmethod
    def from_yaml(cls, config_path: str) -> 'CropDecimateConfig':
        """
        Load and validate configuration from YAML file.

        Args:
            config_path: Path to config.yaml

        Returns:
            Validated CropDecimateConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValidationError: If config is invalid
        """
        import yaml

        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create it from config/crop_decimate/config.yaml.example"
            )

        with open(config_file, 'r') as f:
            config_dict = yaml.safe_load(f) or {}

        # Credenciales del entorno pisan al YAML
        broker = config_dict.setdefault('mqtt', {}).setdefault('broker', {})
        if os.getenv('MQTT_USERNAME'):
            broker['username'] = os.getenv('MQTT_USERNAME')
        if os.getenv('MQTT_PASSWORD'):
            broker['password'] = os.getenv('MQTT_PASSWORD')

        return cls(**config_dict)
