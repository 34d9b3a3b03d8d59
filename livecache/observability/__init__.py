"""Logging and metrics for livecache."""
