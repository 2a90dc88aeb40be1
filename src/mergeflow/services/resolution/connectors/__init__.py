"""External collaborator connectors: CRM record store and validation providers."""
