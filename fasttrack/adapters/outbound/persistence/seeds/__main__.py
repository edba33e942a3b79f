from fasttrack.adapters.outbound.persistence.seeds import main

main()
