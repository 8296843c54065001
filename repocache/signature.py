"""Repository signature construction.

A signature summarises the shape of a repository: every directory that
holds files, the technologies detected from file names, a histogram of file
extensions, and a coarse size bucket. ``pattern_hash`` is a digest over the
structure, technologies and size bucket, so two repositories that agree on
those share a hash and can be matched exactly even when their extension
histograms differ.
"""

from __future__ import annotations

import hashlib
import json
from collections import Counter
from fnmatch import fnmatchcase
from pathlib import Path, PurePosixPath
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set

from .logging import get_logger
from .models import RepositorySignature, SizeCategory
from .scanner import RepoScanner

DEFAULT_EXCLUDE_PATTERNS: tuple[str, ...] = (
    "node_modules",
    ".git",
    "__pycache__",
    ".pytest_cache",
    "venv",
    "env",
    ".env",
    "dist",
    "build",
    ".DS_Store",
    "Thumbs.db",
    "*.log",
    "*.tmp",
)

NO_EXTENSION = "no_extension"
SMALL_MAX_FILES = 20
MEDIUM_MAX_FILES = 100
_HASH_LENGTH = 16

_TECH_BY_SUFFIX: Mapping[str, str] = {
    ".py": "python",
    ".js": "javascript",
    ".jsx": "javascript",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".tf": "terraform",
    ".tfvars": "terraform",
    ".sql": "sql",
    ".ipynb": "jupyter",
    ".yml": "yaml",
    ".yaml": "yaml",
    ".json": "json",
    ".md": "markdown",
    ".markdown": "markdown",
    ".sh": "shell",
    ".bash": "shell",
    ".zsh": "shell",
    ".go": "go",
    ".rs": "rust",
    ".java": "java",
    ".c": "c",
    ".h": "c",
    ".cpp": "cpp",
    ".hpp": "cpp",
    ".cc": "cpp",
    ".cxx": "cpp",
    ".cs": "csharp",
    ".php": "php",
    ".rb": "ruby",
    ".scala": "scala",
    ".kt": "kotlin",
    ".kts": "kotlin",
    ".swift": "swift",
    ".r": "r",
    ".html": "html",
    ".htm": "html",
    ".css": "css",
    ".scss": "css",
    ".sass": "css",
    ".less": "css",
    ".xml": "xml",
    ".vue": "vue",
}

_TECH_BY_FILENAME: Mapping[str, str] = {
    "requirements.txt": "python",
    "setup.py": "python",
    "pyproject.toml": "python",
    "Pipfile": "python",
    "package.json": "node",
    "yarn.lock": "javascript",
    "tsconfig.json": "typescript",
    "Dockerfile": "docker",
    "docker-compose.yml": "docker",
    "docker-compose.yaml": "docker",
    ".dockerignore": "docker",
    "dbt_project.yml": "dbt",
    "profiles.yml": "dbt",
    "airflow.cfg": "airflow",
    ".gitignore": "git",
    ".gitattributes": "git",
    "Makefile": "makefile",
    "makefile": "makefile",
    "go.mod": "go",
    "Cargo.toml": "rust",
    "pom.xml": "java",
    "build.gradle": "java",
    "composer.json": "php",
    "Gemfile": "ruby",
    "Rakefile": "ruby",
    "build.sbt": "scala",
    "Package.swift": "swift",
    "MLproject": "mlflow",
}

# Python frameworks inferred from conventional file names.
_PYTHON_FRAMEWORK_MARKERS: Mapping[str, tuple[str, ...]] = {
    "django": ("settings.py", "urls.py", "wsgi.py", "manage.py"),
    "flask": ("app.py", "application.py"),
    "fastapi": ("main.py",),
}

_PYTHON_TOOL_MARKERS: Mapping[str, tuple[str, ...]] = {
    "mlflow": ("mlflow",),
    "wandb": ("wandb",),
    "kubeflow": ("kubeflow",),
    "airflow": ("airflow", "dags"),
    "prefect": ("prefect",),
    "dagster": ("dagster",),
}


class SignatureBuilder:
    """Computes ``RepositorySignature`` values from repository file listings."""

    def __init__(
        self,
        exclude_patterns: Sequence[str] = (),
        *,
        max_depth: Optional[int] = None,
        scanner: RepoScanner | None = None,
    ) -> None:
        self._exclude_patterns = tuple(DEFAULT_EXCLUDE_PATTERNS) + tuple(exclude_patterns)
        self._max_depth = max_depth
        self._scanner = scanner or RepoScanner()
        self.logger = get_logger("signature")

    def scan(self, root: str | Path) -> RepositorySignature:
        """Walk a local checkout and fingerprint it."""
        files = self._scanner.list_files(root)
        self.logger.debug("Scanner listed %d files under %s", len(files), root)
        return self.build(files)

    def build(self, files: Iterable[str]) -> RepositorySignature:
        """Fingerprint a repository from its root-relative file paths."""
        kept = self.filter_files(files)
        directory_structure = extract_directory_structure(kept, self._max_depth)
        technologies = detect_technologies(kept)
        file_types = count_file_types(kept)
        size_category = categorize_size(len(kept))
        return RepositorySignature(
            directory_structure=directory_structure,
            technologies=technologies,
            file_types=file_types,
            size_category=size_category,
            pattern_hash=compute_pattern_hash(
                directory_structure, technologies, size_category
            ),
        )

    def filter_files(self, files: Iterable[str]) -> List[str]:
        kept: List[str] = []
        for raw in files:
            path = raw.replace("\\", "/").strip("/")
            if not path:
                continue
            parts = path.split("/")
            if any(
                fnmatchcase(part, pattern)
                for part in parts
                for pattern in self._exclude_patterns
            ):
                continue
            kept.append(path)
        return kept


def extract_directory_structure(
    files: Iterable[str], max_depth: Optional[int] = None
) -> List[str]:
    directories: Set[str] = set()
    for path in files:
        parents = path.split("/")[:-1]
        if max_depth is not None:
            parents = parents[:max_depth]
        for index in range(1, len(parents) + 1):
            directories.add("/".join(parents[:index]))
    return sorted(directories)


def detect_technologies(files: Sequence[str]) -> List[str]:
    technologies: Set[str] = set()
    names = [PurePosixPath(path).name for path in files]
    for path, name in zip(files, names):
        suffix = PurePosixPath(name).suffix.lower()
        if suffix in _TECH_BY_SUFFIX:
            technologies.add(_TECH_BY_SUFFIX[suffix])
        if name in _TECH_BY_FILENAME:
            technologies.add(_TECH_BY_FILENAME[name])
        if "dags" in path.split("/")[:-1]:
            technologies.add("airflow")

    if technologies & {"javascript", "typescript"}:
        if any(
            name.endswith((".jsx", ".tsx")) or "/components/" in f"/{path}"
            for path, name in zip(files, names)
        ):
            technologies.add("react")
        if any(name.startswith("next.config.") for name in names):
            technologies.add("nextjs")

    if "python" in technologies:
        for framework, markers in _PYTHON_FRAMEWORK_MARKERS.items():
            if any(name in markers for name in names):
                technologies.add(framework)
        lowered = [path.lower() for path in files]
        for tool, markers in _PYTHON_TOOL_MARKERS.items():
            if any(marker in path for path in lowered for marker in markers):
                technologies.add(tool)

    return sorted(technologies)


def count_file_types(files: Iterable[str]) -> Dict[str, int]:
    counts: Counter[str] = Counter()
    for path in files:
        suffix = PurePosixPath(path).suffix.lower().lstrip(".")
        counts[suffix or NO_EXTENSION] += 1
    return dict(sorted(counts.items()))


def categorize_size(file_count: int) -> SizeCategory:
    if file_count < SMALL_MAX_FILES:
        return "small"
    if file_count < MEDIUM_MAX_FILES:
        return "medium"
    return "large"


def compute_pattern_hash(
    directory_structure: Sequence[str],
    technologies: Iterable[str],
    size_category: str,
) -> str:
    """Digest structure, technologies and size into a stable, order-independent hash.

    The file-type histogram is stored with the signature but is not part of
    its exact-match identity.
    """
    canonical = json.dumps(
        {
            "directories": sorted(directory_structure),
            "technologies": sorted(set(technologies)),
            "size": size_category,
        },
        sort_keys=True,
        separators=(",", ":"),
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:_HASH_LENGTH]


__all__ = [
    "DEFAULT_EXCLUDE_PATTERNS",
    "NO_EXTENSION",
    "SignatureBuilder",
    "categorize_size",
    "compute_pattern_hash",
    "count_file_types",
    "detect_technologies",
    "extract_directory_structure",
]
