"""stackdigger -- non-repeating track stacks from radio episodes and DJ sets."""

__version__ = "0.1.0"
