"""Concrete adapters for every interface in ``stackdigger.interfaces``."""
