"""DynamoDB-backed stores for customers and nudge logs."""
