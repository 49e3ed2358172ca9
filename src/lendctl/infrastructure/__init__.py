"""Infrastructure layer: database engine, schema, and the document store."""
