"""PR review against the linked Confluence design document."""
