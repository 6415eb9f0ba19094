"""hookgate: runs quality-gate checks on the changed surface of a git repository."""

# Bump when the CLI, configuration format or behavior change significantly.
# Configuration files declaring a newer min_version are ignored.
__version__ = "0.4.4"
