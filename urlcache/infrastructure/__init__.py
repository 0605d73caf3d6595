"""Infrastructure Layer: Contains concrete implementations and adapters.

Connects the application to the outside world (network, file system,
console) by implementing the interfaces defined in the domain layer.
"""
