from mailsearch.config.loader import (
    MailSearchConfig,
    get_config,
    reset_config,
    set_config,
)
from mailsearch.config.models import SearchConfig, SolrConfig, SystemConfig

__all__ = [
    "MailSearchConfig",
    "SearchConfig",
    "SolrConfig",
    "SystemConfig",
    "get_config",
    "reset_config",
    "set_config",
]
