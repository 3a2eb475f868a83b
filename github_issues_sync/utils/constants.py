"""Shared constants used across the application."""

import re

# Local Issue Directory Constants
# -------------------------------

ISSUE_FILENAME_TEMPLATE = "issue-{number}.md"
"""Filename of the Markdown file mirroring a GitHub issue."""

ISSUE_FILENAME_PATTERN = re.compile(r"^issue-(0|[1-9]\d*)\.md$")
"""Pattern matching canonical issue filenames, without leading zeros; the first group is the issue number."""

DRAFT_ISSUE_NUMBER = 0
"""Issue number marking a local draft that has not been created on GitHub yet."""

FRONTMATTER_DELIMITER = "---"
"""Line opening and closing the YAML frontmatter block of an issue file."""

# Synchronization Defaults
# ------------------------

DEFAULT_ISSUES_DIR = "./issues"
"""Default directory holding the issue files."""

DEFAULT_SYNC_INTERVAL = 300
"""Default number of seconds between two polls of GitHub in watch mode."""

DEFAULT_DEBOUNCE_SECONDS = 0.5
"""Default quiet window for coalescing filesystem events on the same file."""

DEFAULT_MAX_CONCURRENCY = 4
"""Default maximum number of concurrent GitHub calls within one pass."""

DEFAULT_GITHUB_API_URL = "https://api.github.com"
"""Default GitHub API URL; override for GitHub Enterprise Server."""
