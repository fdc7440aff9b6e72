"""Git integration module for refresher."""

from refresher.git.graph import BLANK_SHA, CommitGraph, GitCommitGraph, is_blank

__all__ = ["BLANK_SHA", "CommitGraph", "GitCommitGraph", "is_blank"]
