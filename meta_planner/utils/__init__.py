"""Utilities - Display markers and plotting."""
