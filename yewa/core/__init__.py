"""Shared configuration, persistence, auth and request guards."""
