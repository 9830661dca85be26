from amadeus_mcp.stdio import main

if __name__ == "__main__":
    main()
