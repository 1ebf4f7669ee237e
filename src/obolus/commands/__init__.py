"""
Obolus CLI commands.

- wallet:    Create or show the local wallet key
- token:     balance, transfer
- chain:     block, interface
- deploy:    Deploy ObolusToken from its Foundry artifact
- console:   Interactive session over the interaction controller
"""
