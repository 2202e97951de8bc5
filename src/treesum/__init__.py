"""Deterministic SHA-256 manifests for directory trees.

The builder walks a tree (skipping dot-named paths), orders files by basename,
hashes them and atomically publishes ``.sha256sum-current.txt`` in the tree.
"""

__version__ = "1.0.0"

__all__: list[str] = [
    "cli",
    "manifest",
]
