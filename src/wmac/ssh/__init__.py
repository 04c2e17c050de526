"""SSH session automation and transcript scraping."""

from wmac.ssh.scraper import clean_output, parse_device_list  # noqa: F401
from wmac.ssh.session import (  # noqa: F401
    ConnectivityResult,
    RemoteSession,
    SessionOutcome,
    SessionResult,
    classify_exit_code,
)
