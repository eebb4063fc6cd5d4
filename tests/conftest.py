"""Root pytest configuration for all tests."""

import logging

# atlassian-python-api logs failed lookups at ERROR level; tests exercise
# those paths on purpose (missing pages, missing properties).
logging.getLogger("atlassian").setLevel(logging.WARNING)
