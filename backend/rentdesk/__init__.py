"""RentDesk - rental property administration backend."""
