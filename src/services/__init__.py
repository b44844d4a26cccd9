"""
Services module - adaptors, watcher, supervisor and the exporter server
"""
