"""
Project discovery and configuration for dotproject.

Locates the project root, computes every path the pipeline reads or
writes, and loads optional settings from .project/project.env.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from . import envparse
from .errors import PreconditionError
from .types import MIN_ID_DIGITS, EntityKind, PromptOwner

logger = logging.getLogger(__name__)

PROJECT_DIRNAME = ".project"
ROOT_MARKERS = (PROJECT_DIRNAME, ".git")

VALID_UNRESOLVED_POLICIES = ("keep", "error")
VALID_ID_SEPARATORS = ("-", "")


@dataclass
class ProjectConfig:
    """Settings from .project/project.env"""
    id_width: int = MIN_ID_DIGITS  # Zero-padded digits in generated IDs
    id_separator: str = "-"  # Between prefix and number: EP-0001
    unresolved_keys: str = "keep"  # keep | error
    schemas_dir: str = "schemas"  # Relative to project root


@dataclass
class ProjectPaths:
    """Every location the pipeline touches, derived from the project root."""
    root: Path
    schemas_dirname: str = "schemas"

    @property
    def project_dir(self) -> Path:
        return self.root / PROJECT_DIRNAME

    @property
    def schemas_dir(self) -> Path:
        return self.root / self.schemas_dirname

    @property
    def sequence_path(self) -> Path:
        return self.project_dir / "sequence.json"

    @property
    def prompts_dir(self) -> Path:
        return self.project_dir / "prompts"

    @property
    def docs_dir(self) -> Path:
        return self.project_dir / "docs"

    @property
    def ideas_dir(self) -> Path:
        return self.project_dir / "ideas"

    @property
    def env_path(self) -> Path:
        return self.project_dir / "project.env"

    def kind_dir(self, kind: EntityKind) -> Path:
        return self.project_dir / kind.dirname

    def record_path(self, kind: EntityKind, record_id: str) -> Path:
        """Path of a record file; fully determined by kind and ID."""
        return self.kind_dir(kind) / f"{record_id}{kind.suffix}"

    def plan_path(self, plan_id: str) -> Path:
        return self.record_path(EntityKind.PLAN, plan_id)

    def prompt_path(self, owner: PromptOwner, owner_id: str) -> Path:
        return self.prompts_dir / f"{owner.file_prefix}-{owner_id}.md"

    def schema_path(self, kind: EntityKind) -> Path:
        return self.schemas_dir / f"{kind.tag}.json"

    def relative(self, path: Path) -> Path:
        """Path relative to the project root, for reports."""
        try:
            return path.relative_to(self.root)
        except ValueError:
            return path

    def ensure_dirs(self) -> None:
        """Create the storage directories the importer writes into."""
        for kind in EntityKind:
            self.kind_dir(kind).mkdir(parents=True, exist_ok=True)
        self.prompts_dir.mkdir(parents=True, exist_ok=True)


def find_project_root(start: Path | None = None) -> Path | None:
    """Walk upward from start (default: cwd) to the first dir holding .project or .git."""
    current = Path(start or Path.cwd()).resolve()
    for candidate in (current, *current.parents):
        if any((candidate / marker).exists() for marker in ROOT_MARKERS):
            return candidate
    return None


def require_project(start: Path | None = None) -> tuple[ProjectPaths, ProjectConfig]:
    """Locate the project root and load its config.

    Raises:
        PreconditionError: if no project root is found or config is invalid
    """
    root = find_project_root(start)
    if root is None:
        raise PreconditionError(
            f"Not in a project: no {PROJECT_DIRNAME}/ or .git/ found above {Path(start or Path.cwd())}"
        )
    paths = ProjectPaths(root)
    config = load_project_config(paths.project_dir)
    paths.schemas_dirname = config.schemas_dir
    return paths, config


def load_project_config(project_dir: Path) -> ProjectConfig:
    """Load project.env and return ProjectConfig. Missing file yields defaults."""
    env = envparse.load_env(project_dir / "project.env")

    try:
        id_width = int(env.get("ID_WIDTH", "4"))
    except ValueError:
        raise PreconditionError(f"ID_WIDTH must be an integer, got '{env['ID_WIDTH']}'") from None
    if id_width < MIN_ID_DIGITS:
        raise PreconditionError(f"ID_WIDTH must be at least {MIN_ID_DIGITS}, got {id_width}")

    id_separator = env.get("ID_SEPARATOR", "-")
    if id_separator not in VALID_ID_SEPARATORS:
        raise PreconditionError(f"ID_SEPARATOR must be '-' or empty, got '{id_separator}'")

    unresolved = env.get("UNRESOLVED_KEYS", "keep").lower()
    if unresolved not in VALID_UNRESOLVED_POLICIES:
        logger.warning(
            f"Unknown UNRESOLVED_KEYS '{unresolved}', defaulting to 'keep'. "
            f"Valid values: {', '.join(VALID_UNRESOLVED_POLICIES)}"
        )
        unresolved = "keep"

    return ProjectConfig(
        id_width=id_width,
        id_separator=id_separator,
        unresolved_keys=unresolved,
        schemas_dir=env.get("SCHEMAS_DIR", "schemas"),
    )
