"""Offline management client.

Applies XmlTransforms to a persisted server configuration file
(standalone.xml / domain.xml) and keeps point-in-time backups of it.

Backup directory structure:
    <config dir>/servercraft-backups/
    ├── before-upgrade.xml
    └── 20260101-120000-000000.xml
"""
import logging
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from lxml import etree

from ..management.version import ServerVersion
from ..utils.logging_config import timed_section_sync
from .transform import TransformError, XmlTransform

logger = logging.getLogger(__name__)

ROOT_NS_PREFIX = "urn:jboss:domain:"
BACKUP_DIR_NAME = "servercraft-backups"


class OfflineManagementClient:
    """Read-transform-write access to a configuration document."""

    def __init__(
        self,
        server_id: str,
        config_file: Union[str, Path],
        backup_dir: Optional[Union[str, Path]] = None,
    ):
        self.server_id = server_id
        self.config_file = Path(config_file).expanduser()
        self.backup_dir = (
            Path(backup_dir).expanduser() if backup_dir
            else self.config_file.parent / BACKUP_DIR_NAME
        )

    def _load(self) -> etree._ElementTree:
        if not self.config_file.exists():
            raise TransformError(f"Configuration file {self.config_file} does not exist")
        try:
            return etree.parse(str(self.config_file))
        except etree.XMLSyntaxError as e:
            raise TransformError(f"Malformed configuration file {self.config_file}: {e}") from e

    def apply(self, transform: XmlTransform) -> bool:
        """Apply a transform, writing the file back only if it changed.

        Returns:
            True if the document was modified

        Raises:
            TransformError: document unreadable, or the transform itself failed
        """
        tree = self._load()
        with timed_section_sync(f"offline:{transform.name}", self.server_id):
            edited = transform.apply(tree.getroot())

        if not edited:
            logger.info(f"{transform.name}: nothing to change in {self.config_file}")
            return False

        tree.write(str(self.config_file), xml_declaration=True, encoding="UTF-8")
        logger.info(f"{transform.name}: updated {edited} subtree(s) in {self.config_file}")
        return True

    def version(self) -> ServerVersion:
        """Schema version from the root namespace, e.g. urn:jboss:domain:1.7."""
        namespace = etree.QName(self._load().getroot()).namespace or ""
        if not namespace.startswith(ROOT_NS_PREFIX):
            raise TransformError(f"Unrecognized root namespace '{namespace}'")
        return ServerVersion.parse(namespace[len(ROOT_NS_PREFIX):])

    # === Backups ===

    def backup(self, name: Optional[str] = None) -> str:
        """Copy the configuration file into the backup directory.

        Args:
            name: Backup name (default: UTC timestamp)

        Returns:
            Backup name
        """
        if not self.config_file.exists():
            raise TransformError(f"Configuration file {self.config_file} does not exist")
        if name is None:
            name = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S-%f")

        self.backup_dir.mkdir(parents=True, exist_ok=True)
        shutil.copy2(self.config_file, self.backup_dir / f"{name}.xml")
        logger.info(f"Backed up {self.config_file} as '{name}'")
        return name

    def restore(self, name: str) -> None:
        """Replace the configuration file with a backup."""
        source = self.backup_dir / f"{name}.xml"
        if not source.exists():
            raise ValueError(f"Backup '{name}' not found")

        shutil.copy2(source, self.config_file)
        logger.info(f"Restored {self.config_file} from backup '{name}'")

    def list_backups(self) -> list[str]:
        """Backup names in reverse name order (newest first for timestamps)."""
        if not self.backup_dir.exists():
            return []
        return sorted((p.stem for p in self.backup_dir.glob("*.xml")), reverse=True)
