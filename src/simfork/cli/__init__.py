"""simfork CLI commands."""
