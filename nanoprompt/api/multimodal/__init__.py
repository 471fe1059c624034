"""Image input package for API adapters.

Architectural role:
- Converts picked or dropped files into `SourceImage` records.
- Applies size/type constraints before the workflow sees the image.

Scope:
- Input preprocessing only; no HTTP endpoint definitions.
"""
