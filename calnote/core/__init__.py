"""Configuration, logging, errors and clock helpers shared across calnote."""
