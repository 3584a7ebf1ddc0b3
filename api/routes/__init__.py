"""
Route handlers, one module per resource.

Each handler runs the same fixed pipeline: authenticate (dependency),
validate and authorize (inside the store call), execute, shape the envelope.
"""
