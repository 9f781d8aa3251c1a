"""Scissor-linkage ring and arch kinematics engine."""

__all__ = ["assembly", "cache", "cli", "collision", "costing", "export", "faces", "geometry", "linkage", "measurements", "orientation", "panels", "parameters", "picking", "pipeline", "search", "stacks", "vec3"]
