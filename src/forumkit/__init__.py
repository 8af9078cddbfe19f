"""forumkit: permission engine and post-authoring pipeline for discussion forums."""

__version__ = "0.1.0"
