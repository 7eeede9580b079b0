"""Public 'www' site: request pipeline and application bootstrap."""
