"""Release package path resolution and dependency readiness checks."""