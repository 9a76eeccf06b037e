"""Core changelog logic.

- Commit model and conventional commit parsing
- Commit classification
- Release assembly and statistics
- Semantic version bumping
- Template rendering and changelog output
"""
