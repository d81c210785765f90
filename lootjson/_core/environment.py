import os
from typing import Any, Optional

from dotenv import find_dotenv
from pydantic import BaseModel, Field, GetCoreSchemaHandler
from pydantic_core import CoreSchema, core_schema
from pydantic_settings import BaseSettings, SettingsConfigDict

###################################
# .env File Loading Logic
# 1. It first checks for an environment variable `ENV_PATH` for an explicit file path.
# 2. If `ENV_PATH` is not set or the file doesn't exist, it falls back to `find_dotenv()`,
#    which automatically searches for a `.env` file in the current and parent directories.
###################################


env_path_from_var = os.getenv('ENV_PATH')
dotenv_path = (
    env_path_from_var
    if env_path_from_var and os.path.exists(env_path_from_var)
    else find_dotenv()
)

DEFAULT_MAX_BUFFER_SIZE = 64 * 1024


class LogLevel(str):
    """Custom type for log levels, ensuring the value is one of the standard levels."""

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> CoreSchema:
        def validate_log_level(v: str) -> str:
            valid_levels = {'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'}
            v_upper = v.upper()
            if v_upper not in valid_levels:
                raise ValueError(f'Log level must be one of: {valid_levels}')
            return v_upper

        return core_schema.no_info_after_validator_function(
            validate_log_level, core_schema.str_schema()
        )


class BufferSize(int):
    """Custom type for a streaming buffer limit, ensuring the value is positive."""

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> CoreSchema:
        def validate_buffer_size(v: int) -> int:
            if v <= 0:
                raise ValueError('Buffer size must be a positive number of characters')
            return v

        return core_schema.no_info_after_validator_function(
            validate_buffer_size, core_schema.int_schema()
        )


###################################
# Core Configuration Schema
###################################
class LootConfig(BaseModel):
    """Defines the configuration schema for the lootjson package.
    This class does not load from the environment; it only defines the data shape.
    """

    # Logging Settings
    log_level: LogLevel = Field(
        default='INFO', description='The minimum logging level.'
    )
    log_use_rich: bool = Field(
        default=True, description='Use rich for beautiful, formatted logging output.'
    )
    log_format_string: Optional[str] = Field(
        default=None, description='A custom format string for the console logger.'
    )
    log_file_path: Optional[str] = Field(
        default=None, description='If set, logs will also be written to this file.'
    )

    # Parser Settings
    repair_log_level: LogLevel = Field(
        default='DEBUG',
        description='Level used for per-repair and per-candidate parser chatter.',
    )
    incremental_max_buffer_size: BufferSize = Field(
        default=DEFAULT_MAX_BUFFER_SIZE,
        description='Default buffer size (in characters) before IncrementalLoot compacts.',
    )


###################################
# Settings Initialization
###################################
class AppSettings(BaseSettings, LootConfig):
    """Application settings that load from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix='',
        case_sensitive=False,
        validate_assignment=True,
        extra='ignore',
        env_file=dotenv_path,
        env_file_encoding='utf-8',
    )


# Global Settings
settings = AppSettings()
