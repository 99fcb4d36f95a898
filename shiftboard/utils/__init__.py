"""Pure helper functions shared by the services."""
