"""NAT rule chains that map service cluster IPs to their endpoints."""