"""amo-submit: submit add-ons for signing and download the signed package."""
