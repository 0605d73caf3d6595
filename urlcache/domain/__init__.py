"""Domain Layer: value objects and the interfaces (ports) the other layers depend on."""
