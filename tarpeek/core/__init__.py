"""Pattern compilation, entry selection and the scan controller."""
