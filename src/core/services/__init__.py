# reading-analytics-core - Core Services
# Pure helpers shared by components and adapters
