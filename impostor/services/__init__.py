"""Domain, storage and orchestration services behind the HTTP and Socket.IO layers."""
