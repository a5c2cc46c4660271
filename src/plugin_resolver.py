import logging
import os
from pathlib import Path, PurePosixPath
from typing import List, NamedTuple, Optional, Union

from constants import NAMESPACE
from exceptions import ResolutionError
from staging_settings import StagingSettings


class PluginFolderMatch(NamedTuple):
    """A plugin folder and its path relative to the plugin root it was found under."""

    folder: Path
    relative_path: str


class PluginFolderResolver:
    """Locates plugin folders within the configured plugin roots."""

    def __init__(
        self,
        settings: Optional[StagingSettings] = None,
        plugin_roots: Optional[List[Union[str, Path]]] = None,
    ) -> None:
        self.logger = logging.getLogger(f"{NAMESPACE}.{__name__.split('.')[-1]}")
        self.settings = settings or StagingSettings()
        self._plugin_roots = (
            [Path(root) for root in plugin_roots] if plugin_roots is not None else None
        )

    @property
    def plugin_roots(self) -> List[Path]:
        if self._plugin_roots is not None:
            return self._plugin_roots
        return self.settings.plugin_roots()

    def find_plugin_folder(self, plugin_folder_name: str) -> Optional[PluginFolderMatch]:
        """
        Find a plugin's folder on disk.

        Roots are searched in order; the first root holding a folder whose path
        relative to the root is exactly `plugin_folder_name` wins.

        Args:
            plugin_folder_name: Relative folder path, e.g. "pkgA" or "pkgA/sub"

        Returns:
            The match, or None when no root contains the folder

        Raises:
            ResolutionError: If an existing root cannot be searched
        """
        segments = [part for part in PurePosixPath(plugin_folder_name).parts if part != "/"]
        if not segments or any(part in (".", "..") for part in segments):
            return None

        for root in self.plugin_roots:
            if not root.exists():
                continue
            try:
                folder = self._search(root, segments)
            except OSError as e:
                raise ResolutionError(
                    f"Error searching for folder '{plugin_folder_name}' in {root}"
                ) from e
            if folder is not None:
                relative_path = folder.relative_to(root).as_posix()
                self.logger.debug(f"Found plugin folder {relative_path} in {root}")
                return PluginFolderMatch(folder, relative_path)

        return None

    def _search(self, root: Path, segments: List[str]) -> Optional[Path]:
        # Descend one level per segment, only into directories on the way to the target
        current = root
        for segment in segments:
            with os.scandir(current) as entries:
                match = next(
                    (
                        entry
                        for entry in entries
                        if entry.name == segment and entry.is_dir(follow_symlinks=True)
                    ),
                    None,
                )
            if match is None:
                return None
            current = current / match.name
        return current
