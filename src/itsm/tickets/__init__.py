"""
Tickets Module
==============

Ticket intake: create an incident, service request or change request,
auto-assign it to the least-loaded agent and notify.

Also owns the ORM tables the assignment module reads.
"""
