"""
Image worker: a small upload/download proxy in front of the flyer bucket,
deployed separately from the events API.
"""
