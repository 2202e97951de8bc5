"""Manifest builder: tree walk, ordering, digesting and atomic publication.

Every stage is deterministic for an unchanged tree so two manifests can be
diffed without spurious churn.
"""

__all__: list[str] = [
    "builder",
    "errors",
    "hash_utils",
    "ordering",
    "records",
    "summary",
    "walker",
    "writer",
]
