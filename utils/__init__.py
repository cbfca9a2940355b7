# Shared helpers for the Busy2Shop backend
