"""Core building blocks shared by every feature: settings and exceptions."""
