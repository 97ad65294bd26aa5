"""Protocol clients for simple telnet."""
