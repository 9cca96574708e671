"""Infrastructure layer: persistence, locking, messaging and factories"""
