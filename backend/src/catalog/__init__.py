"""Product catalog: public browsing and administrator maintenance."""
