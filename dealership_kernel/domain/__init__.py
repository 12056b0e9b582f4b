"""Pure domain layer: enums, transition tables, cost arithmetic, events, DTOs."""
