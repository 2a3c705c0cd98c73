"""
Integration Tests Package for the Parking Chain

These tests drive the interactive console and the process entry point end to
end, with scripted input streams and temporary record files.
"""
