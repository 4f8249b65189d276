"""Project-wide constants for the GCC journal."""

GCC_DIR_NAME = ".gcc"
CONTEXT_DIR_NAME = "context"
CONFIG_FILE_NAME = "config.yaml"
ERROR_LOG_FILE_NAME = "error.log"

SUMMARY_FILE_NAME = "main.md"
BRANCHES_DIR_NAME = "branches"
REGISTRY_FILE_NAME = "_registry.md"
COMMITS_FILE_NAME = "commits.md"
LOG_FILE_NAME = "log.md"
MIGRATION_MARKER_NAME = ".migrated-v2"
BACKUP_SUFFIX = ".v1-backup"

DEFAULT_BRANCH = "main"

JOURNAL_ANCHOR = "# Milestone Journal\n\n"
ACTIVE_BRANCH_HEADING = "## Active Branch"
BRANCH_HISTORY_HEADING = "## Branch History"
MILESTONES_HEADING = "## Recent Milestones"
OPEN_BRANCHES_HEADING = "## Open Branches"
CONCLUSION_HEADING = "## Conclusion"

MILESTONES_PLACEHOLDER = "(none yet)"
OPEN_BRANCHES_EMPTY = "- (none)"
CONCLUSION_PLACEHOLDER = "(Fill in at merge time - success/failure/partial)"

STATUS_ACTIVE = "active"
STATUS_MERGED = "merged"

DEFAULT_MILESTONES_KEPT = 5
DEFAULT_LOG_MAX_LINES = 500
DEFAULT_LOG_KEEP_LINES = 200
DEFAULT_RECENT_COMMIT_COUNT = 3
DEFAULT_EXTENDED_COMMIT_COUNT = 10
MAX_SEARCH_MATCHES = 5

SUMMARY_TEMPLATE = f"""# Project Context

## Current Focus
(Auto-created by GCC. Update with current goals.)

{MILESTONES_HEADING}
- {MILESTONES_PLACEHOLDER}

{OPEN_BRANCHES_HEADING}
{OPEN_BRANCHES_EMPTY}
"""

REGISTRY_TEMPLATE = f"""{ACTIVE_BRANCH_HEADING}
{DEFAULT_BRANCH}

{BRANCH_HISTORY_HEADING}
| Branch | Status | Created |
|--------|--------|---------|
"""

MAIN_JOURNAL_TEMPLATE = JOURNAL_ANCHOR
