"""BeYou storefront and admin back-office API"""
