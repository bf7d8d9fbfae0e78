"""Pink Diary backend: diary storage with monthly backup and restore."""

__version__ = "0.1.0"
