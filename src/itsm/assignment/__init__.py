"""
Assignment Module
=================

Bounded Context for least-busy agent auto-assignment.

Responsibilities:
- Count open tickets per eligible agent across incidents, service requests
  and change requests
- Select the least-loaded agent for a newly created ticket
- Load the assignment policy (eligible roles, terminal statuses) from YAML
- Expose workload and recommendation endpoints
"""
