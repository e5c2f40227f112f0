"""Infrastructure for GreenRules: remote API client, session storage, audit log."""
