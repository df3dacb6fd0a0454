"""dependsight - know which dependency upgrades matter to your code."""

__version__ = "0.1.0"
