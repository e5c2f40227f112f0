"""Domain layer: exception hierarchy and the rule draft."""
