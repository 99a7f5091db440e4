"""Foundation: configuration, error taxonomy and structured logging."""
