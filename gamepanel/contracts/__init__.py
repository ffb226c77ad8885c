"""Data contracts shared by the panel components."""
