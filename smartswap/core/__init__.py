"""Core swap and recovery logic."""
