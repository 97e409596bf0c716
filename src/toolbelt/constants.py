from enum import Enum

from . import VERSION

USER_AGENT = f"toolbelt-v-{VERSION}"

# Rewriter GraphQL endpoint, formatted with account and workspace
REWRITER_URL = "https://app.io.vtex.com/vtex.rewriter/v1/{account}/{workspace}/_v/graphql"

DEFAULT_WORKSPACE = "master"
DEFAULT_TIMEOUT = 15  # seconds

# Redirects sent per rewriter mutation
REDIRECT_BATCH_SIZE = 100
DELETE_BATCH_SIZE = 100

# Whole-import retries on unclassified failures
MAX_RETRIES = 3
RETRY_INTERVAL_S = 5

# Checkpoint namespaces inside the metainfo file
IMPORTS = "imports"
DELETES = "deletes"

# Index file the rewriter keeps next to the route fragments
LAST_CHANGE_DATE = "lastChangeDate"

DELETE_FILE_PREFIX = ".toolbelt_redirects_to_delete_"


class Headers(str, Enum):
    # Target cluster; only honoured on the dev domain
    UPSTREAM_TARGET = "x-vtex-upstream-target"
