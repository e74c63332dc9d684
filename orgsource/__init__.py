"""
orgsource: an event-sourced aggregate engine for hierarchical organizations
"""
