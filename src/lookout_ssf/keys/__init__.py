"""Offline key provisioning helpers."""
