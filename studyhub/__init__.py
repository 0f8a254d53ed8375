"""Study Hub backend."""
