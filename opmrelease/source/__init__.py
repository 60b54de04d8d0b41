"""Source resolution, artifact download, digest verification, extraction and CUE module checks."""