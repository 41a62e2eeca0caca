"""Building blocks shared by the store, the report reader and the CLI."""
