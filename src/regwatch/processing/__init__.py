"""Record models, classification and alerting."""
