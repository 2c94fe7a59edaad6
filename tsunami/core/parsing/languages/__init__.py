"""
Grammar configurations for the dialects a TypeScript project can contain.

- typescript.py: TypeScript (.ts, .mts, .cts, .d.ts) and TSX (.tsx)
- javascript.py: JavaScript (.js, .jsx, .mjs, .cjs), only with allowJs
"""

from .typescript import TYPESCRIPT_CONFIG, TSX_CONFIG
from .javascript import JAVASCRIPT_CONFIG

__all__ = [
    'TYPESCRIPT_CONFIG',
    'TSX_CONFIG',
    'JAVASCRIPT_CONFIG',
]
