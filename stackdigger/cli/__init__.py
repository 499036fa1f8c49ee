"""CLI tools for stackdigger.

- ``python -m stackdigger.cli.stacks`` -- build, list, show and delete
  stacks; mark containers seen; show or reset exposure state.
"""
