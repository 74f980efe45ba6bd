"""Pure domain logic for the inventory kernel: DTOs, dates, clock and settlement arithmetic."""
