"""isolator — isolate a single package of a JavaScript workspace into a deployable zip."""

__version__ = "0.1.0"
