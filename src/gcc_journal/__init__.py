"""Git-like project journal: main line, exploration branches and milestone commits."""

__version__ = "0.1.0"
