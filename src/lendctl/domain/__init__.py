"""Pure domain rules: lifecycle transitions, roles, records, and event payloads."""
