from caldav_tasks.observability.logging_config import (
    CredentialRedactionFilter,
    setup_logging,
)

__all__ = ["CredentialRedactionFilter", "setup_logging"]
