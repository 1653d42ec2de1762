"""CLI tools for the documentation index.

- ``python -m src.cli.index`` -- index directories or archives as a
  version, search, list versions, show stats, delete or clear.

All CLI modules use argparse.  Heavy imports (embedding models, the
vector store) are deferred inside handlers so ``--help`` stays fast.
"""
