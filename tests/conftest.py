import os
import warnings

# Ignore warnings from third-party ODM internals
warnings.filterwarnings("ignore", category=DeprecationWarning, module="beanie.*")

# Set test environment variables
os.environ.update(
    {
        "DEMO_MODE": "true",
        "LIVE_FANOUT_BACKEND": "local",
    }
)

# Import fixtures so they are available to all tests
from tests.fixtures.mongo_fixtures import *  # noqa: E402, F403
from tests.fixtures.redis_fixtures import *  # noqa: E402, F403
from tests.fixtures.live_fixtures import *  # noqa: E402, F403
