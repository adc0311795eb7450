"""Pure domain layer: statuses, workflows, review decisions, DTOs, clock."""
