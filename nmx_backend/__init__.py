"""NMX rewards backend: timed reward claims and limited TON -> NMX trades."""
