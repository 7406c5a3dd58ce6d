"""Core installation logic: registry, resolver, mutators and orchestrators."""
