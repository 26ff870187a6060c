"""Pure analytics services: snapshot windowing, performance, yields and Monte Carlo."""
