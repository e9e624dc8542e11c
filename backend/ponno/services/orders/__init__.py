"""Order lifecycle management: state machine, repository and service."""
