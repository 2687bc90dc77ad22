"""Test configuration for pytest."""

import logging
import os
import pytest


@pytest.fixture(autouse=True)
def configure_test_logging():
    """Configure logging for tests to be minimal."""
    os.environ['LAYOUTCROP_LOG_LEVEL'] = 'WARNING'

    logging.getLogger().setLevel(logging.WARNING)

    # Page skips are expected in failure tests
    for logger_name in ['layoutcrop.pipeline', 'layoutcrop.regions.extraction']:
        logging.getLogger(logger_name).setLevel(logging.ERROR)
