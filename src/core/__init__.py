"""Core services for the installed program scanner: config, logging, export."""

from .config import AppConfig, load_app_config  # noqa: F401
from .logging import configure_logging, get_logger  # noqa: F401
# NOTE: export is not re-exported here to avoid a circular import with
# extractors.system.registry. Import directly: from core.export import export_programs
