"""Pure domain core: pricing, status derivation, policy, clock and DTOs."""
