"""Shared configuration, class catalogue and wire models."""
