"""Framework integrations for tutorme-identity."""
