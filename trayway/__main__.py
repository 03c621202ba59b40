from trayway.desktop import main

main()
