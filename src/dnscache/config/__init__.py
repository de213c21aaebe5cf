"""Configuration loading and logging setup for dnscache."""
