"""Domain layer: entities, value objects and pure slot/occupancy rules"""
