"""Telegram front end for the Cookie Clicker AFK session."""
