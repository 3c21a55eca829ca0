"""Freshservice identity connector.

Syncs agents, requesters, agent groups, roles and requester groups from the
Freshservice REST API into a generic identity-governance model, one page at
a time, and pushes grant/revoke operations back. Ticketing support maps
service catalog items to generic ticket schemas.
"""
