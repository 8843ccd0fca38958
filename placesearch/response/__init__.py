"""Final payload models and the pure builder that assembles them."""
