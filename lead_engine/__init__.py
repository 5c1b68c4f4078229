"""Lead qualification scoring and follow-up lifecycle engine."""
