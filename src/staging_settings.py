"""
Settings threaded through the installer, stager, resolver and registrar.

Values normally come from the environment via StagingSettings.from_env();
tests and embedding applications construct the model directly.
"""

import os
import tempfile
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from constants import (
    DEFAULT_CLUSTER_PATH_SEPARATOR,
    DEFAULT_PLUGIN_BASE_FOLDERS,
    DEFAULT_SHIM_DRIVER_DEPLOYMENT_LOCATION,
)


class StagingSettings(BaseModel):
    """Local environment the staging engine runs in."""

    temp_dir: str = Field(
        default_factory=tempfile.gettempdir,
        description="Directory for extraction and exclusion-filtered copies",
    )
    cluster_path_separator: str = Field(
        default=DEFAULT_CLUSTER_PATH_SEPARATOR,
        min_length=1,
        description="Separator between entries of the cluster classpath",
    )
    plugin_base_folders: List[str] = Field(
        default_factory=lambda: list(DEFAULT_PLUGIN_BASE_FOLDERS),
        description="Plugin roots searched in order of precedence",
    )
    shim_driver_deployment_location: str = Field(
        default=DEFAULT_SHIM_DRIVER_DEPLOYMENT_LOCATION,
        description="Local directory whose files are staged under drivers/",
    )

    @field_validator("plugin_base_folders", mode="before")
    @classmethod
    def _split_folders(cls, value):
        if isinstance(value, str):
            return [folder.strip() for folder in value.split(",") if folder.strip()]
        return value

    def plugin_roots(self) -> List[Path]:
        """Plugin roots as expanded local paths, preserving order."""
        return [Path(folder).expanduser() for folder in self.plugin_base_folders]

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "StagingSettings":
        """
        Build settings from environment variables.

        Environment variables:
            KETTLE_STAGING_TEMP_DIR: temporary directory (default: system temp)
            HADOOP_CLUSTER_PATH_SEPARATOR: classpath separator (default: ",")
            KETTLE_PLUGIN_BASE_FOLDERS: comma-separated plugin roots
            SHIM_DRIVER_DEPLOYMENT_LOCATION: shim driver directory (default: ./drivers)
        """
        env = os.environ if environ is None else environ
        values = {}
        if env.get("KETTLE_STAGING_TEMP_DIR"):
            values["temp_dir"] = env["KETTLE_STAGING_TEMP_DIR"]
        if env.get("HADOOP_CLUSTER_PATH_SEPARATOR"):
            values["cluster_path_separator"] = env["HADOOP_CLUSTER_PATH_SEPARATOR"]
        if env.get("KETTLE_PLUGIN_BASE_FOLDERS"):
            values["plugin_base_folders"] = env["KETTLE_PLUGIN_BASE_FOLDERS"]
        if env.get("SHIM_DRIVER_DEPLOYMENT_LOCATION"):
            values["shim_driver_deployment_location"] = env[
                "SHIM_DRIVER_DEPLOYMENT_LOCATION"
            ]
        return cls(**values)
