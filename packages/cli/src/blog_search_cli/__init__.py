"""Blog Search CLI.

Command-line interface for unified search over articles, activities,
users and tags.
"""

__version__ = "1.0.0"
