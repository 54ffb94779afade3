"""Stoxly: stock-tracking backend with a shared realtime quote layer."""
