"""
Parser Registry — Routes files to grammar configurations.

Central registry that maps file extensions to LanguageConfig instances.
Longest extension wins, so ".d.ts" can be told apart from ".ts".

Usage:
    registry = ParserRegistry.default()

    config = registry.get_config("src/app.tsx")
    # Returns TSX_CONFIG
"""

from pathlib import PurePath
from typing import Dict, Optional, Set, Union

from .config import LanguageConfig


class ParserRegistry:
    """
    Registry of grammar configurations.

    Maps file extensions to LanguageConfig instances for routing.
    Files with an unknown extension fall back to the configured default.
    """

    def __init__(self, fallback: Optional[str] = None):
        """
        Initialize empty registry.

        Args:
            fallback: Config name used for unknown extensions
        """
        self._configs: Dict[str, LanguageConfig] = {}  # name -> config
        self._extension_map: Dict[str, str] = {}  # ext -> config name
        self._fallback = fallback

    @classmethod
    def default(cls) -> 'ParserRegistry':
        """Registry with the TypeScript and JavaScript dialects, TypeScript as fallback."""
        from .languages import TYPESCRIPT_CONFIG, TSX_CONFIG, JAVASCRIPT_CONFIG

        registry = cls(fallback=TYPESCRIPT_CONFIG.name)
        registry.register(TYPESCRIPT_CONFIG)
        registry.register(TSX_CONFIG)
        registry.register(JAVASCRIPT_CONFIG)
        return registry

    def register(self, config: LanguageConfig) -> None:
        """
        Register a grammar configuration.

        Raises:
            ValueError: If extension already registered to different config
        """
        for ext in config.extensions:
            ext_lower = ext.lower()
            if ext_lower in self._extension_map:
                existing = self._extension_map[ext_lower]
                if existing != config.name:
                    raise ValueError(
                        f"Extension {ext} already registered to {existing}, "
                        f"cannot register to {config.name}"
                    )

        self._configs[config.name] = config
        for ext in config.extensions:
            self._extension_map[ext.lower()] = config.name

    def lookup(self, file_path: Union[str, PurePath]) -> Optional[LanguageConfig]:
        """
        Get the config registered for a file's extension.

        Returns:
            LanguageConfig if the extension is registered, None otherwise
        """
        name = PurePath(file_path).name.lower()
        # Longest registered suffix first (".d.ts" before ".ts")
        for ext in sorted(self._extension_map, key=len, reverse=True):
            if name.endswith(ext):
                return self._configs[self._extension_map[ext]]
        return None

    def get_config(self, file_path: Union[str, PurePath]) -> LanguageConfig:
        """
        Get config for a file, using the fallback for unknown extensions.

        Raises:
            KeyError: If the extension is unknown and no fallback is set
        """
        config = self.lookup(file_path)
        if config is not None:
            return config
        if self._fallback is None:
            raise KeyError(f"No grammar registered for {file_path}")
        return self._configs[self._fallback]

    def project_extensions(self, allow_js: bool = False) -> Set[str]:
        """
        Extensions collected into a project.

        Args:
            allow_js: Include dialects that need compilerOptions.allowJs
        """
        extensions: Set[str] = set()
        for config in self._configs.values():
            if config.requires_allow_js and not allow_js:
                continue
            extensions.update(ext.lower() for ext in config.extensions)
        return extensions

    def __len__(self) -> int:
        return len(self._configs)

    def __contains__(self, name: str) -> bool:
        return name in self._configs
