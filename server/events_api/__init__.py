"""
Events API for ConnectUtahToday.

This package provides a FastAPI application that serves organizations,
volunteer opportunities and flyer images from the database, and merges the
Google Calendar, Mobilize and flyer feeds into one normalized event list.
"""
