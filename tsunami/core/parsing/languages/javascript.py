"""
JavaScript grammar configuration.

The javascript grammar parses JSX as well, so one config covers all four
extensions. These files only join a project when compilerOptions.allowJs
is set.
"""

from ..config import LanguageConfig


JAVASCRIPT_CONFIG = LanguageConfig(
    name="JavaScript",
    tree_sitter_name="javascript",
    extensions={'.js', '.jsx', '.mjs', '.cjs'},
    requires_allow_js=True,
)
