"""git-sub: one status/log/ls-files view across a tree of git submodules."""

__version__ = "0.4.0"
