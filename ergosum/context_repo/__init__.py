"""Git-style versioning for context artifacts.

The ``ergosum`` console script is defined in :mod:`ergosum.context_repo.app`.
"""
