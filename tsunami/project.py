"""
TsProject — Project configuration loaded from tsconfig.json

Supplies the two things startup needs from the project:
- compiler options (allowJs decides whether JavaScript files join)
- the initial Project File Set

File set rules follow tsc:
- "files" entries are always included
- "include" globs are relative to the tsconfig directory; a pattern
  without wildcards or extension names a directory; the default is
  every file, unless "files" is given
- "exclude" removes matches from the "include" results only; the
  default excludes package manager directories and the outDir

tsconfig.json may contain comments and trailing commas.
"""

import fnmatch
import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

from .core.parsing import ExclusionConfig, ParserRegistry
from .errors import ProjectConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "tsconfig.json"
DEFAULT_EXCLUDE = ["node_modules", "bower_components", "jspm_packages"]

_TRAILING_COMMA = re.compile(r',(\s*[}\]])')


def strip_json_comments(text: str) -> str:
    """Remove // and /* */ comments outside of string literals."""
    out = []
    i = 0
    length = len(text)
    in_string = False
    while i < length:
        char = text[i]
        if in_string:
            out.append(char)
            if char == '\\' and i + 1 < length:
                out.append(text[i + 1])
                i += 2
                continue
            if char == '"':
                in_string = False
            i += 1
        elif char == '"':
            in_string = True
            out.append(char)
            i += 1
        elif text.startswith('//', i):
            end = text.find('\n', i)
            i = length if end == -1 else end
        elif text.startswith('/*', i):
            end = text.find('*/', i + 2)
            i = length if end == -1 else end + 2
        else:
            out.append(char)
            i += 1
    return ''.join(out)


def _has_wildcard(pattern: str) -> bool:
    return any(c in pattern for c in '*?')


def _glob_match(rel: str, pattern: str) -> bool:
    # "**/" also matches zero directories
    return fnmatch.fnmatch(rel, pattern) or fnmatch.fnmatch(rel, pattern.replace('**/', ''))


def _relative_pattern(pattern: str) -> str:
    pattern = pattern.strip()
    while pattern.startswith('./'):
        pattern = pattern[2:]
    return pattern.rstrip('/')


class TsProject:
    """
    A TypeScript project rooted at a tsconfig.json.

    Usage:
        project = TsProject.load(Path("."))
        project.compiler_options   # {"strict": True, ...}
        project.file_names()       # ["/abs/src/a.ts", ...]
    """

    def __init__(
        self,
        config_path: Path,
        data: Dict[str, Any],
        registry: Optional[ParserRegistry] = None,
        exclusions: Optional[ExclusionConfig] = None,
    ):
        self.config_path = Path(config_path).resolve()
        self.data = data
        self.registry = registry or ParserRegistry.default()
        self.exclusions = exclusions or ExclusionConfig.default()

    @classmethod
    def load(
        cls,
        project_dir: Path,
        config_name: str = DEFAULT_CONFIG_NAME,
        registry: Optional[ParserRegistry] = None,
    ) -> 'TsProject':
        """
        Read tsconfig.json from a project directory.

        Raises:
            ProjectConfigError: If the file is missing, unreadable or not a JSON object
        """
        config_path = Path(project_dir) / config_name
        try:
            raw = config_path.read_text(encoding='utf-8')
        except OSError as e:
            raise ProjectConfigError(f"Cannot read project configuration {config_path}: {e.strerror or e}") from e

        try:
            data = json.loads(_TRAILING_COMMA.sub(r'\1', strip_json_comments(raw)))
        except ValueError as e:
            raise ProjectConfigError(f"Invalid project configuration {config_path}: {e}") from e
        if not isinstance(data, dict):
            raise ProjectConfigError(f"Invalid project configuration {config_path}: expected an object")

        logger.info("Loaded project configuration %s", config_path)
        return cls(config_path, data, registry=registry)

    @property
    def root(self) -> Path:
        return self.config_path.parent

    @property
    def compiler_options(self) -> Dict[str, Any]:
        options = self.data.get("compilerOptions") or {}
        return options if isinstance(options, dict) else {}

    @property
    def allow_js(self) -> bool:
        return bool(self.compiler_options.get("allowJs"))

    def _list_setting(self, key: str) -> Optional[List[str]]:
        value = self.data.get(key)
        if value is None:
            return None
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ProjectConfigError(f"Invalid project configuration {self.config_path}: '{key}' must be a list of strings")
        return value

    def _exclude_patterns(self) -> List[str]:
        patterns = self._list_setting("exclude")
        if patterns is None:
            patterns = list(DEFAULT_EXCLUDE)
            for key in ("outDir", "declarationDir"):
                out_dir = self.compiler_options.get(key)
                if isinstance(out_dir, str) and out_dir:
                    patterns.append(out_dir)
        return [_relative_pattern(p) for p in patterns]

    def _is_excluded(self, rel: str, patterns: List[str]) -> bool:
        for pattern in patterns:
            if not pattern:
                continue
            if _has_wildcard(pattern):
                if _glob_match(rel, pattern):
                    return True
                # A wildcard pattern can also name a directory
                parts = rel.split('/')
                if any(_glob_match('/'.join(parts[:i]), pattern) for i in range(1, len(parts))):
                    return True
            elif rel == pattern or rel.startswith(pattern + '/'):
                return True
        return False

    def _is_project_file(self, path: Path) -> bool:
        name = path.name.lower()
        return any(name.endswith(ext) for ext in self.registry.project_extensions(self.allow_js))

    def file_names(self) -> List[str]:
        """
        The initial Project File Set, as absolute paths.

        Raises:
            ProjectConfigError: If files/include/exclude are malformed
        """
        files = self._list_setting("files")
        include = self._list_setting("include")
        if include is None:
            include = [] if files is not None else ["**/*"]
        exclude = self._exclude_patterns()

        selected: Dict[str, None] = {}
        for entry in files or []:
            selected[str((self.root / entry).resolve())] = None

        for pattern in include:
            pattern = _relative_pattern(pattern)
            last = pattern.rsplit('/', 1)[-1]
            if not _has_wildcard(last) and '.' not in last:
                pattern = f"{pattern}/**/*" if pattern else "**/*"
            for path in sorted(self.root.glob(pattern)):
                if not path.is_file() or not self._is_project_file(path):
                    continue
                rel = path.relative_to(self.root).as_posix()
                if self._is_excluded(rel, exclude) or self.exclusions.is_excluded(Path(rel)):
                    continue
                selected[str(path.resolve())] = None

        logger.info("Project %s has %d files", self.config_path, len(selected))
        return list(selected.keys())
