"""Family domain - families, membership and invite codes."""
