"""Constants for blobtrack."""

# Repository marker directory
BLOBTRACK_DIR = ".blobtrack"

# Metadata files (inside BLOBTRACK_DIR)
HEAD_FILE = "HEAD"
CONFIG_FILE = "config"
DESCRIPTION_FILE = "description"
INDEX_FILE = "index"
INDEX_LOCK_FILE = "index.lock"
OBJECTS_DIR = "objects"

# Ignore file at the repository root
IGNORE_FILE = ".blobtrackignore"

# Symbolic reference format
REF_PREFIX = "ref: "
HEADS_PREFIX = "refs/heads/"
DEFAULT_BRANCH = "main"

DEFAULT_DESCRIPTION = "Unnamed repository; edit this file 'description' to name the repository.\n"

# Version
BLOBTRACK_VERSION = "0.1.0"
